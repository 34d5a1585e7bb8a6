"""SQLAlchemyBetStore のテスト"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from racebet.constants import BetStatus, DriverStatus, RaceStatus
from racebet.models import Base, Bet, Driver, Race, User
from racebet.repositories.bet_store import SQLAlchemyBetStore

NOW = datetime(2024, 5, 1, 12, 0)


@pytest.fixture
def session(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


def _race(session, subsession_id, start_time, status=RaceStatus.UPCOMING, **kwargs):
    race = Race(
        subsession_id=subsession_id,
        name=f"Race {subsession_id}",
        track="Daytona",
        category="Oval",
        start_time=start_time,
        status=status,
        participants=[
            Driver(iracing_id=100001, name="Driver 1", car_number="1"),
            Driver(iracing_id=100002, name="Driver 2", car_number="2"),
        ],
        **kwargs,
    )
    session.add(race)
    session.flush()
    return race


def _bet(session, race, status=BetStatus.CONFIRMED, driver_index=0, user=None):
    if user is None:
        user = User(email=f"user{race.id}-{driver_index}@example.com")
        session.add(user)
        session.flush()
    bet = Bet(
        user_id=user.id,
        race_id=race.id,
        driver_id=race.participants[driver_index].id,
        amount=0.5,
        odds=2.5,
        status=status,
    )
    session.add(bet)
    session.flush()
    return bet


class TestRacesDueForResults:
    """ポーリング対象レースの抽出"""

    def test_開始前のレースは対象外(self, session):
        _race(session, 1, NOW + timedelta(hours=1))
        store = SQLAlchemyBetStore(session)

        assert store.races_due_for_results(NOW) == []

    def test_開始済みで未完了のレースが開始順に返る(self, session):
        later = _race(session, 1, NOW - timedelta(hours=1), RaceStatus.LIVE)
        earlier = _race(session, 2, NOW - timedelta(hours=2))
        store = SQLAlchemyBetStore(session)

        assert store.races_due_for_results(NOW) == [earlier, later]

    def test_完了とキャンセルは対象外(self, session):
        _race(session, 1, NOW - timedelta(hours=1), RaceStatus.COMPLETED)
        _race(session, 2, NOW - timedelta(hours=1), RaceStatus.CANCELLED)
        store = SQLAlchemyBetStore(session)

        assert store.races_due_for_results(NOW) == []


class TestRacesAwaitingSettlement:
    def test_未精算の完了レース(self, session):
        race = _race(session, 1, NOW - timedelta(hours=3), RaceStatus.COMPLETED)
        store = SQLAlchemyBetStore(session)

        assert store.races_awaiting_settlement() == [race]

    def test_精算済みでも未払いのWONがあれば対象(self, session):
        race = _race(
            session, 1, NOW - timedelta(hours=3), RaceStatus.COMPLETED, settled_at=NOW
        )
        _bet(session, race, BetStatus.WON)
        store = SQLAlchemyBetStore(session)

        assert store.races_awaiting_settlement() == [race]

    def test_精算済みで払い戻し済みは対象外(self, session):
        race = _race(
            session, 1, NOW - timedelta(hours=3), RaceStatus.COMPLETED, settled_at=NOW
        )
        _bet(session, race, BetStatus.PAID_OUT)
        store = SQLAlchemyBetStore(session)

        assert store.races_awaiting_settlement() == []


class TestMarkRaceSettled:
    def test_CONFIRMEDが残っていれば精算済みにしない(self, session):
        race = _race(session, 1, NOW, RaceStatus.COMPLETED)
        _bet(session, race, BetStatus.CONFIRMED)
        store = SQLAlchemyBetStore(session)

        assert store.mark_race_settled(race.id, NOW) is False
        session.refresh(race)
        assert race.settled_at is None

    def test_CONFIRMEDが無ければ精算済みにする(self, session):
        race = _race(session, 1, NOW, RaceStatus.COMPLETED)
        _bet(session, race, BetStatus.LOST)
        store = SQLAlchemyBetStore(session)

        assert store.mark_race_settled(race.id, NOW) is True
        session.refresh(race)
        assert race.settled_at == NOW


class TestTransitionBet:
    """条件付きステータス遷移"""

    def test_期待ステータスなら遷移する(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race)
        store = SQLAlchemyBetStore(session)

        assert store.transition_bet(bet.id, BetStatus.CONFIRMED, BetStatus.WON) is True
        session.refresh(bet)
        assert bet.status == BetStatus.WON

    def test_二回目の遷移は失敗する(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race)
        store = SQLAlchemyBetStore(session)

        assert store.transition_bet(bet.id, BetStatus.CONFIRMED, BetStatus.WON) is True
        assert store.transition_bet(bet.id, BetStatus.CONFIRMED, BetStatus.LOST) is False
        session.refresh(bet)
        assert bet.status == BetStatus.WON

    def test_PENDINGはCONFIRMEDを期待する遷移で動かない(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race, BetStatus.PENDING)
        store = SQLAlchemyBetStore(session)

        assert store.transition_bet(bet.id, BetStatus.CONFIRMED, BetStatus.LOST) is False


class TestPayoutClaim:
    """払い戻しクレーム"""

    def test_クレームは一度だけ取れる(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race, BetStatus.WON)
        store = SQLAlchemyBetStore(session)

        assert store.claim_payout(bet.id, NOW) is True
        assert store.claim_payout(bet.id, NOW) is False

    def test_WON以外はクレームできない(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race, BetStatus.LOST)
        store = SQLAlchemyBetStore(session)

        assert store.claim_payout(bet.id, NOW) is False

    def test_解放すると署名も消えて再クレームできる(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race, BetStatus.WON)
        store = SQLAlchemyBetStore(session)

        store.claim_payout(bet.id, NOW)
        store.record_payout_attempt(bet.id, "sig", "blockhash")
        store.release_payout_claim(bet.id)
        session.refresh(bet)

        assert bet.payout_claimed_at is None
        assert bet.payout_tx_signature is None
        assert bet.payout_blockhash is None
        assert store.claim_payout(bet.id, NOW) is True

    def test_送信前に署名とブロックハッシュを記録する(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race, BetStatus.WON)
        store = SQLAlchemyBetStore(session)

        store.claim_payout(bet.id, NOW)
        store.record_payout_attempt(bet.id, "sig", "blockhash")
        session.refresh(bet)

        assert bet.payout_tx_signature == "sig"
        assert bet.payout_blockhash == "blockhash"
        assert bet.payout_claimed_at == NOW

    def test_mark_paid_out(self, session):
        race = _race(session, 1, NOW)
        bet = _bet(session, race, BetStatus.WON)
        store = SQLAlchemyBetStore(session)

        assert store.mark_paid_out(bet.id, "payout-sig") is True
        assert store.mark_paid_out(bet.id, "payout-sig") is False
        session.refresh(bet)
        assert bet.status == BetStatus.PAID_OUT
        assert bet.payout_tx_signature == "payout-sig"


class TestQueries:
    def test_list_racesはベット数を返す(self, session):
        race1 = _race(session, 1, NOW)
        race2 = _race(session, 2, NOW + timedelta(days=1))
        _bet(session, race1)
        _bet(session, race1, driver_index=1)
        store = SQLAlchemyBetStore(session)

        rows = store.list_races()

        assert [(race.id, count) for race, count in rows] == [(race1.id, 2), (race2.id, 0)]
        assert len(rows[0][0].participants) == 2

    def test_find_driverはレース内で探す(self, session):
        race1 = _race(session, 1, NOW)
        race2 = _race(session, 2, NOW)
        store = SQLAlchemyBetStore(session)

        driver = store.find_driver(race2.id, 100001)

        assert driver.race_id == race2.id
        assert driver is not race1.participants[0]
        assert store.find_driver(race1.id, 999) is None

    def test_list_betsはユーザーで絞り込める(self, session):
        race = _race(session, 1, NOW)
        bet1 = _bet(session, race)
        bet2 = _bet(session, race, driver_index=1)
        store = SQLAlchemyBetStore(session)

        assert [b.id for b in store.list_bets()] == [bet1.id, bet2.id]
        assert [b.id for b in store.list_bets(user_id=bet2.user_id)] == [bet2.id]
        assert store.list_bets()[0].driver.iracing_id == 100001


class TestCompleteRace:
    def test_完了時に終了時刻と勝者の着順を記録する(self, session):
        race = _race(session, 1, NOW, status=RaceStatus.LIVE)
        store = SQLAlchemyBetStore(session)

        store.complete_race(race, NOW + timedelta(hours=2), winning_position=0)

        assert race.status == RaceStatus.COMPLETED
        assert race.end_time == NOW + timedelta(hours=2)
        assert race.winning_position == 0

    def test_完走者なしなら勝者の着順はNone(self, session):
        race = _race(session, 1, NOW, status=RaceStatus.LIVE)
        store = SQLAlchemyBetStore(session)

        store.complete_race(race, None, winning_position=None)

        assert race.status == RaceStatus.COMPLETED
        assert race.end_time is None
        assert race.winning_position is None
