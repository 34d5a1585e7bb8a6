"""ベットのエンティティストア

レース・ドライバー・ベットの検索と状態遷移。ベットの状態変更はすべて
直前の状態を条件にした UPDATE なので、精算処理が重なっても遷移は
一度しか起きない。
"""

from datetime import datetime

from sqlalchemy import and_, exists, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from racebet.constants import FINAL_RACE_STATUSES, BetStatus, RaceStatus
from racebet.models import Bet, Driver, Race, User


class SQLAlchemyBetStore:
    """SQLAlchemyのセッションを使用したベットのエンティティストア"""

    def __init__(self, session: Session):
        """初期化

        Args:
            session: SQLAlchemyセッション
        """
        self.session = session

    # ---- レース ----------------------------------------------------

    def get_race(self, race_id: int) -> Race | None:
        return self.session.get(Race, race_id)

    def races_due_for_results(self, now: datetime) -> list[Race]:
        """開始時刻を過ぎていて、完了でも中止でもないレースを取得

        Args:
            now: 現在時刻（naive UTC）

        Returns:
            開始時刻順のレースのリスト
        """
        stmt = (
            select(Race)
            .where(Race.start_time < now)
            .where(Race.status.not_in(FINAL_RACE_STATUSES))
            .order_by(Race.start_time, Race.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def races_awaiting_settlement(self) -> list[Race]:
        """精算または払い戻しが残っている完了済みレースを取得

        ``settled_at`` が未設定か、WON のまま PAID_OUT になっていない
        ベットがあるレースが対象。
        """
        unpaid = exists().where(
            and_(Bet.race_id == Race.id, Bet.status == BetStatus.WON)
        )
        stmt = (
            select(Race)
            .where(Race.status == RaceStatus.COMPLETED)
            .where(or_(Race.settled_at.is_(None), unpaid))
            .order_by(Race.start_time, Race.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def complete_race(
        self, race: Race, end_time: datetime | None, winning_position: int | None
    ) -> None:
        race.status = RaceStatus.COMPLETED
        race.winning_position = winning_position
        if end_time is not None:
            race.end_time = end_time

    def mark_race_settled(self, race_id: int, now: datetime) -> bool:
        """CONFIRMED のベットが残っていなければ ``settled_at`` を設定する

        Returns:
            精算済みになった（またはすでに精算済み）ならTrue
        """
        pending = self.session.execute(
            select(func.count(Bet.id))
            .where(Bet.race_id == race_id)
            .where(Bet.status == BetStatus.CONFIRMED)
        ).scalar_one()
        if pending:
            return False

        self.session.execute(
            update(Race)
            .where(Race.id == race_id, Race.settled_at.is_(None))
            .values(settled_at=now)
        )
        return True

    def list_races(self) -> list[tuple[Race, int]]:
        """全レースを出走ドライバーとベット数付きで開始時刻順に取得"""
        bet_count = (
            select(func.count(Bet.id)).where(Bet.race_id == Race.id).scalar_subquery()
        )
        stmt = (
            select(Race, bet_count)
            .options(selectinload(Race.participants))
            .order_by(Race.start_time, Race.id)
        )
        return [(race, count) for race, count in self.session.execute(stmt).all()]

    # ---- ドライバー ------------------------------------------------

    def find_driver(self, race_id: int, iracing_id: int) -> Driver | None:
        stmt = select(Driver).where(
            Driver.race_id == race_id, Driver.iracing_id == iracing_id
        )
        return self.session.execute(stmt).scalars().first()

    def get_driver(self, driver_id: int) -> Driver | None:
        return self.session.get(Driver, driver_id)

    # ---- ベット ----------------------------------------------------

    def get_bet(self, bet_id: int) -> Bet | None:
        return self.session.get(Bet, bet_id)

    def bets_for_race(self, race_id: int) -> list[Bet]:
        stmt = (
            select(Bet)
            .where(Bet.race_id == race_id)
            .options(selectinload(Bet.driver), selectinload(Bet.user))
            .order_by(Bet.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_bets(self, user_id: int | None = None) -> list[Bet]:
        stmt = select(Bet).options(
            selectinload(Bet.driver), selectinload(Bet.race), selectinload(Bet.user)
        )
        if user_id is not None:
            stmt = stmt.where(Bet.user_id == user_id)
        return list(self.session.execute(stmt.order_by(Bet.id)).scalars().all())

    def add_bet(self, bet: Bet) -> Bet:
        self.session.add(bet)
        self.session.flush()
        return bet

    def transition_bet(
        self, bet_id: int, expected: BetStatus, new_status: BetStatus
    ) -> bool:
        """ベットを ``expected`` から ``new_status`` に遷移させる

        Args:
            bet_id: ベットID
            expected: 現在の状態として期待する値
            new_status: 書き込む状態

        Returns:
            この呼び出しで遷移したならTrue
        """
        result = self.session.execute(
            update(Bet)
            .where(Bet.id == bet_id, Bet.status == expected)
            .values(status=new_status)
        )
        return result.rowcount == 1

    def claim_payout(self, bet_id: int, now: datetime) -> bool:
        """WON のベットの払い戻しを一度だけ確保する

        Returns:
            確保できた（他の処理が確保していなかった）ならTrue
        """
        result = self.session.execute(
            update(Bet)
            .where(
                Bet.id == bet_id,
                Bet.status == BetStatus.WON,
                Bet.payout_claimed_at.is_(None),
            )
            .values(payout_claimed_at=now)
        )
        return result.rowcount == 1

    def release_payout_claim(self, bet_id: int) -> None:
        """送金が成立しなかった WON のベットの確保を解放する

        記録済みの署名とブロックハッシュも消すので、次回は新しい送金を作る。
        送金がまだ着金しうる間は呼ばないこと。
        """
        self.session.execute(
            update(Bet)
            .where(Bet.id == bet_id, Bet.status == BetStatus.WON)
            .values(payout_claimed_at=None, payout_tx_signature=None, payout_blockhash=None)
        )

    def record_payout_attempt(self, bet_id: int, signature: str, blockhash: str) -> None:
        """署名済みの払い戻し送金の署名とブロックハッシュを送信前に記録する"""
        self.session.execute(
            update(Bet)
            .where(Bet.id == bet_id, Bet.status == BetStatus.WON)
            .values(payout_tx_signature=signature, payout_blockhash=blockhash)
        )

    def mark_paid_out(self, bet_id: int, signature: str) -> bool:
        """WON -> PAID_OUT（払い戻しの署名を記録）"""
        result = self.session.execute(
            update(Bet)
            .where(Bet.id == bet_id, Bet.status == BetStatus.WON)
            .values(status=BetStatus.PAID_OUT, payout_tx_signature=signature)
        )
        return result.rowcount == 1

    # ---- ユーザー --------------------------------------------------

    def get_user(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)
