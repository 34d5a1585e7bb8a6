"""race_service のテスト"""

from datetime import datetime, timedelta

import pytest

from racebet.constants import DriverStatus, RaceStatus
from racebet.db import get_engine, get_session, init_db
from racebet.errors import NotFoundError, ValidationError
from racebet.services import race_service

NOW = datetime(2024, 5, 1, 12, 0)

PARTICIPANTS = [
    {"iracing_id": 100001, "name": "Driver 1", "car_number": "1", "team_name": "Team A"},
    {"iracing_id": 100002, "name": "Driver 2", "car_number": 2},
]


@pytest.fixture
def session(tmp_path):
    engine = get_engine(str(tmp_path / "racebet.db"))
    init_db(engine)
    with get_session(engine) as session:
        yield session
    engine.dispose()


def _create(session, subsession_id=12345, start_time=NOW, participants=PARTICIPANTS):
    return race_service.create_race(
        session,
        subsession_id=subsession_id,
        name="Daytona 500",
        track="Daytona International Speedway",
        category="Oval",
        start_time=start_time,
        participants=participants,
    )


class TestCreateRace:
    def test_ドライバーと一緒に作成する(self, session):
        race = _create(session)

        assert race.status == RaceStatus.UPCOMING
        assert [d.iracing_id for d in race.participants] == [100001, 100002]
        assert race.participants[1].car_number == "2"
        assert race.participants[0].status == DriverStatus.REGISTERED
        assert race.participants[0].team_name == "Team A"

    def test_サブセッション重複は拒否(self, session):
        _create(session)

        with pytest.raises(ValidationError):
            _create(session)

    def test_同じドライバーの重複は拒否(self, session):
        with pytest.raises(ValidationError):
            _create(session, participants=[PARTICIPANTS[0], PARTICIPANTS[0]])


class TestQueries:
    def test_開始順に並ぶ(self, session):
        later = _create(session, subsession_id=1, start_time=NOW + timedelta(days=1))
        earlier = _create(session, subsession_id=2, start_time=NOW)

        assert [race.id for race, _ in race_service.list_races(session)] == [earlier.id, later.id]

    def test_存在しないレースはNotFoundError(self, session):
        with pytest.raises(NotFoundError):
            race_service.get_race(session, 999)
