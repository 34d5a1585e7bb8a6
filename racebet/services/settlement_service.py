"""SettlementService - レース結果からベットを精算し払い戻すサービス

開始時刻を過ぎたレースの結果をレースデータソースから取得し、着順を
記録して CONFIRMED のベットを WON / LOST に確定する。的中したベットは
ハウスウォレットから払い戻す。各段階は個別にコミットするので、失敗しても
結果を取り直さずに次回のポーリングで再試行できる。
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Protocol

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from racebet.constants import (
    FINAL_RACE_STATUSES,
    NO_FINISH_POSITION,
    BetStatus,
    DriverStatus,
    RaceStatus,
)
from racebet.db import get_session
from racebet.errors import NotFoundError, TransferError
from racebet.models import Bet, Race
from racebet.models.base import utcnow
from racebet.models.results import RaceResults, ResultRow
from racebet.repositories.bet_store import SQLAlchemyBetStore

logger = logging.getLogger(__name__)


class RaceDataSource(Protocol):
    """サブセッション結果の取得元"""

    def get_race_results(self, subsession_id: int) -> RaceResults | None:
        """サブセッションの結果（未確定ならNone）"""
        ...


class TransferService(Protocol):
    """払い戻し送金の構築・署名・送信・確認"""

    def build_payout_transaction(
        self, house_wallet: str, winner_wallet: str, amount: float, memo: str | None = None
    ) -> Any: ...

    def sign_transaction(self, transaction: Any, keypair: Any) -> Any: ...

    def signature_of(self, transaction: Any) -> str: ...

    def blockhash_of(self, transaction: Any) -> str: ...

    def submit_transaction(self, transaction: Any, max_retries: int = 3) -> str: ...

    def confirm_transaction(self, signature: str, timeout: float = 60.0) -> bool: ...

    def is_transaction_expired(self, signature: str, blockhash: str) -> bool: ...


@dataclass
class SettlementReport:
    """1回の精算処理の集計"""

    races_checked: int = 0
    races_completed: int = 0
    races_failed: int = 0
    bets_won: int = 0
    bets_lost: int = 0
    payouts_sent: int = 0
    payouts_pending: int = 0


def calculate_payout(amount: float, odds: float) -> float:
    """賭け金 × オッズ

    Decimalで計算するので 0.5 × 2.5 はちょうど 1.25 になる。
    """
    return float(Decimal(str(amount)) * Decimal(str(odds)))


def derive_driver_result(row: ResultRow) -> tuple[DriverStatus, int | None]:
    """結果行からドライバーの状態と記録する着順を決める

    周回数0はDSQ、着順なし（-1）はDNFで着順はNULL、それ以外はFINISHED。
    """
    position = row.finish_position if row.finish_position >= 0 else None
    if row.laps_completed == 0:
        return DriverStatus.DSQ, position
    if row.finish_position == NO_FINISH_POSITION:
        return DriverStatus.DNF, None
    return DriverStatus.FINISHED, position


def winning_position(rows: Iterable[ResultRow]) -> int | None:
    """結果全体で完走者の最小着順

    エントリーにないドライバーの行も含めて判定する。
    """
    positions = []
    for row in rows:
        status, position = derive_driver_result(row)
        if status == DriverStatus.FINISHED and position is not None:
            positions.append(position)
    return min(positions) if positions else None


class SettlementService:
    """結果が出たレースのベットを精算するサービス"""

    def __init__(
        self,
        engine: Engine,
        race_data_source: RaceDataSource,
        transfer_service: TransferService,
        house_wallet: str | None = None,
        house_keypair: Any = None,
        confirm_timeout: float = 60.0,
        max_retries: int = 3,
        clock: Callable[[], datetime] = utcnow,
        store_factory: Callable[[Session], SQLAlchemyBetStore] = SQLAlchemyBetStore,
    ):
        """初期化

        Args:
            engine: ベットストアのSQLAlchemyエンジン
            race_data_source: レース結果の取得元
            transfer_service: Solana送金アダプター
            house_wallet: 払い戻し元の公開鍵
            house_keypair: 払い戻しに署名する鍵（Noneなら払い戻さない）
            confirm_timeout: 払い戻し確認の待ち時間（秒）
            max_retries: 払い戻し送信の試行回数
            clock: 現在時刻（naive UTC）を返す関数
            store_factory: セッションからエンティティストアを作る関数
        """
        self._engine = engine
        self._race_data = race_data_source
        self._transfer = transfer_service
        self._house_wallet = house_wallet
        self._house_keypair = house_keypair
        self._confirm_timeout = confirm_timeout
        self._max_retries = max_retries
        self._clock = clock
        self._store_factory = store_factory

    def update_race_statuses(self) -> SettlementReport:
        """開始時刻を過ぎた全レースを確認し、精算できるものを精算する

        1レースの失敗はログに残し、他のレースは続行する。
        最後に精算が終わっていない完了済みレースを処理する。

        Returns:
            SettlementReport: 今回の集計
        """
        report = SettlementReport()
        now = self._clock()

        with get_session(self._engine) as session:
            race_ids = [r.id for r in self._store_factory(session).races_due_for_results(now)]

        settled: set[int] = set()
        for race_id in race_ids:
            report.races_checked += 1
            try:
                if self.process_race_results(race_id, report):
                    report.races_completed += 1
                    settled.add(race_id)
            except Exception:
                report.races_failed += 1
                logger.exception("Error processing results for race %s", race_id)

        self.settle_pending_races(report, skip=settled)
        return report

    def process_race_results(
        self, race_id: int, report: SettlementReport | None = None
    ) -> bool:
        """1レースの結果を取得・記録し、ベットを精算する

        勝者の着順は結果全体から決めてレースに保存する。結果に載って
        いないエントリーはDNFとして記録する。

        Args:
            race_id: レースID
            report: 更新する集計（任意）

        Returns:
            結果が取得でき、レースが COMPLETED になったならTrue

        Raises:
            NotFoundError: レースが存在しない場合
        """
        with get_session(self._engine) as session:
            race = self._store_factory(session).get_race(race_id)
            if race is None:
                raise NotFoundError(f"Race {race_id} not found")
            if race.status in FINAL_RACE_STATUSES:
                return False
            subsession_id = race.subsession_id

        results = self._race_data.get_race_results(subsession_id)
        if results is None:
            logger.info(
                "No results available yet for race %s (subsession %s)", race_id, subsession_id
            )
            return False

        with get_session(self._engine) as session:
            store = self._store_factory(session)
            race = store.get_race(race_id)
            store.complete_race(race, results.session_end_time, winning_position(results.results))

            reported: set[int] = set()
            for row in results.results:
                driver = store.find_driver(race_id, row.cust_id)
                if driver is None:
                    logger.warning(
                        "Result for iRacing member %s (%s) has no driver entry in race %s",
                        row.cust_id,
                        row.display_name,
                        race_id,
                    )
                    continue
                reported.add(driver.id)
                driver.status, driver.finish_position = derive_driver_result(row)

            # 確定した結果に載っていないエントリーは着順なし
            for driver in race.participants:
                if driver.id in reported or driver.status == DriverStatus.DSQ:
                    continue
                logger.warning(
                    "Driver %s (iRacing %s) is missing from the results of race %s, recorded as DNF",
                    driver.id,
                    driver.iracing_id,
                    race_id,
                )
                driver.status = DriverStatus.DNF
                driver.finish_position = None

        logger.info("Race %s completed with %d result rows", race_id, len(results.results))
        self.settle_race(race_id, report)
        return True

    def settle_pending_races(
        self, report: SettlementReport | None = None, skip: set[int] | None = None
    ) -> None:
        """未精算のベットや未完了の払い戻しが残る完了済みレースを再処理する"""
        skip = skip or set()
        with get_session(self._engine) as session:
            race_ids = [r.id for r in self._store_factory(session).races_awaiting_settlement()]

        for race_id in race_ids:
            if race_id in skip:
                continue
            try:
                self.settle_race(race_id, report)
            except Exception:
                logger.exception("Error settling bets for race %s", race_id)

    def settle_race(self, race_id: int, report: SettlementReport | None = None) -> None:
        """完了済みレースの CONFIRMED のベットを精算し、未払いの払い戻しを再開する

        Args:
            race_id: レースID
            report: 更新する集計（任意）
        """
        with get_session(self._engine) as session:
            store = self._store_factory(session)
            race = store.get_race(race_id)
            if race is None or race.status != RaceStatus.COMPLETED:
                return
            # セッション終了後も参照できるように読み込んでおく
            _ = list(race.participants)
            bets = store.bets_for_race(race_id)

        for bet in bets:
            try:
                if bet.status == BetStatus.CONFIRMED:
                    outcome = self.settle_bet(bet, race)
                    if report is not None and outcome is not None:
                        if outcome == BetStatus.LOST:
                            report.bets_lost += 1
                        else:
                            report.bets_won += 1
                            if outcome == BetStatus.PAID_OUT:
                                report.payouts_sent += 1
                elif bet.status == BetStatus.WON:
                    paid = self._resume_payout(bet)
                    if report is not None:
                        if paid:
                            report.payouts_sent += 1
                        else:
                            report.payouts_pending += 1
            except Exception:
                logger.exception("Error settling bet %s", bet.id)

        with get_session(self._engine) as session:
            self._store_factory(session).mark_race_settled(race_id, self._clock())

    def settle_bet(self, bet: Bet, race: Race) -> BetStatus | None:
        """1件のベットをレース結果で確定する

        CONFIRMED のベットだけを対象とする。ドライバーの結果がまだなければ
        スキップして次回に回す。的中はFINISHEDで、着順がレースに記録された
        勝者の着順と一致すること。CONFIRMED -> WON/LOST は条件付きで
        書き込むので、2つの処理が同じベットを精算しても一方しか成功しない。

        Args:
            bet: ``driver`` と ``user`` を読み込み済みのベット
            race: ``participants`` を読み込み済みの完了レース

        Returns:
            新しい状態（WON / LOST / PAID_OUT）。この呼び出しで精算
            しなかった場合はNone
        """
        if bet.status != BetStatus.CONFIRMED:
            return None

        driver = bet.driver
        if driver.race_id != race.id:
            logger.error(
                "Bet %s references driver %s which is not entered in race %s",
                bet.id,
                driver.id,
                race.id,
            )
            return None

        if driver.finish_position is None and driver.status not in (
            DriverStatus.DNF,
            DriverStatus.DSQ,
        ):
            logger.info(
                "Driver %s has no finish position yet for race %s", driver.id, race.id
            )
            return None

        won = (
            driver.status == DriverStatus.FINISHED
            and driver.finish_position is not None
            and driver.finish_position == race.winning_position
        )
        new_status = BetStatus.WON if won else BetStatus.LOST

        with get_session(self._engine) as session:
            transitioned = self._store_factory(session).transition_bet(
                bet.id, BetStatus.CONFIRMED, new_status
            )
        if not transitioned:
            logger.info("Bet %s was already settled by another worker", bet.id)
            return None

        bet.status = new_status
        logger.info("Bet %s settled as %s", bet.id, new_status.value)

        if not won:
            return new_status

        wallet = bet.user.wallet_address if bet.user is not None else None
        if not wallet:
            logger.warning("Bet %s won but user %s has no wallet address", bet.id, bet.user_id)
            return new_status

        if self.process_payout(bet, wallet) is not None:
            return BetStatus.PAID_OUT
        return new_status

    def process_payout(self, bet: Bet, destination_wallet: str) -> str | None:
        """ハウスウォレットから ``amount × odds`` SOL を払い戻す

        最初に払い戻しを一度だけ確保する（他の処理が確保済みなら送らない）。
        署名した時点で署名とブロックハッシュを記録してから送信する。
        送信エラーでも着金の可能性があるので確保は残し、次回以降に記録した
        署名を確認する。確保を解放するのは、オンチェーンで失敗したときか、
        ブロックハッシュが失効して着金しえなくなったときだけ。

        Args:
            bet: WON のベット
            destination_wallet: 的中者の公開鍵

        Returns:
            PAID_OUT になったなら払い戻しの署名、それ以外はNone
        """
        if not self._house_wallet or self._house_keypair is None:
            logger.error("House wallet not configured, payout for bet %s deferred", bet.id)
            return None

        payout_amount = calculate_payout(bet.amount, bet.odds)

        with get_session(self._engine) as session:
            claimed = self._store_factory(session).claim_payout(bet.id, self._clock())
        if not claimed:
            logger.info("Payout for bet %s already claimed", bet.id)
            return None

        memo = json.dumps(
            {
                "type": "payout",
                "betId": bet.id,
                "raceId": bet.race_id,
                "driverId": bet.driver_id,
            }
        )

        try:
            transaction = self._transfer.build_payout_transaction(
                self._house_wallet, destination_wallet, payout_amount, memo
            )
            signed = self._transfer.sign_transaction(transaction, self._house_keypair)
            signature = self._transfer.signature_of(signed)
            blockhash = self._transfer.blockhash_of(signed)
        except Exception:
            # まだ何も送っていない
            logger.exception("Could not build payout for bet %s", bet.id)
            self._release_claim(bet.id)
            return None

        with get_session(self._engine) as session:
            self._store_factory(session).record_payout_attempt(bet.id, signature, blockhash)
        bet.payout_tx_signature = signature
        bet.payout_blockhash = blockhash

        try:
            self._transfer.submit_transaction(signed, max_retries=self._max_retries)
        except Exception:
            logger.exception(
                "Payout %s for bet %s may not have been sent, will reconcile", signature, bet.id
            )
            return None

        logger.info(
            "Submitted payout %s for bet %s, amount %s SOL", signature, bet.id, payout_amount
        )
        return self._finalize_payout(bet, signature, self._confirm_timeout)

    def _resume_payout(self, bet: Bet) -> bool:
        """WON のまま PAID_OUT になっていないベットの払い戻しを続ける"""
        if bet.payout_tx_signature:
            return self._finalize_payout(bet, bet.payout_tx_signature, timeout=0) is not None

        if bet.payout_claimed_at is not None:
            logger.warning(
                "Payout for bet %s claimed at %s without a signature, left for review",
                bet.id,
                bet.payout_claimed_at,
            )
            return False

        wallet = bet.user.wallet_address if bet.user is not None else None
        if not wallet:
            return False
        return self.process_payout(bet, wallet) is not None

    def _finalize_payout(self, bet: Bet, signature: str, timeout: float) -> str | None:
        try:
            confirmed = self._transfer.confirm_transaction(signature, timeout=timeout)
        except TransferError:
            logger.exception("Payout %s for bet %s failed on-chain", signature, bet.id)
            self._release_claim(bet.id)
            return None

        if confirmed:
            with get_session(self._engine) as session:
                paid = self._store_factory(session).mark_paid_out(bet.id, signature)
            if paid:
                bet.status = BetStatus.PAID_OUT
                logger.info("Bet %s paid out (%s)", bet.id, signature)
            return signature if paid else None

        if bet.payout_blockhash and self._payout_expired(bet, signature):
            self._release_claim(bet.id)
            return None

        logger.warning(
            "Payout %s for bet %s not confirmed yet, will check again", signature, bet.id
        )
        return None

    def _payout_expired(self, bet: Bet, signature: str) -> bool:
        try:
            expired = self._transfer.is_transaction_expired(signature, bet.payout_blockhash)
        except Exception:
            logger.exception("Could not check expiry of payout %s for bet %s", signature, bet.id)
            return False
        if expired:
            logger.warning(
                "Payout %s for bet %s expired without landing, releasing claim", signature, bet.id
            )
        return expired

    def _release_claim(self, bet_id: int) -> None:
        with get_session(self._engine) as session:
            self._store_factory(session).release_payout_claim(bet_id)
