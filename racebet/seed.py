"""デモデータ: ユーザー2名、レース3件（開始前、開催中、完了）、ベット2件"""

from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from racebet.constants import BetStatus, DriverStatus, RaceStatus
from racebet.models import Bet, Driver, Race, User
from racebet.models.base import utcnow
from racebet.services.race_service import create_race

DEMO_USERS = (
    {
        "email": "john@example.com",
        "name": "John Doe",
        "iracing_id": 123456,
        "wallet_address": "5FHwkrdxbtjJzZKZhNCvq7C2WmwYPRtYu1pzgzKvEeMj",
    },
    {
        "email": "jane@example.com",
        "name": "Jane Smith",
        "iracing_id": 654321,
        "wallet_address": "5FGfbZdEaH12ZzF1jV8jMqbsWsfRVyeHHnxzr9zXs1Wi",
    },
)


def _drivers(rows: list[tuple]) -> list[dict]:
    keys = ("iracing_id", "name", "car_number", "team_name", "status", "finish_position")
    return [dict(zip(keys, row)) for row in rows]


def seed_demo_data(session: Session, now: datetime | None = None) -> dict:
    """全データをデモデータで置き換える

    Returns:
        作成した件数 {"users": n, "races": n, "bets": n}
    """
    now = now or utcnow()

    # 既存データを削除
    for model in (Bet, Driver, Race, User):
        session.execute(delete(model))

    john, jane = (User(**fields) for fields in DEMO_USERS)
    session.add_all([john, jane])
    session.flush()

    upcoming = create_race(
        session,
        subsession_id=12345,
        name="Daytona 500",
        track="Daytona International Speedway",
        category="Oval",
        start_time=now + timedelta(days=7),
        participants=_drivers([
            (100001, "Driver 1", "1", "Team A", DriverStatus.REGISTERED, None),
            (100002, "Driver 2", "2", "Team B", DriverStatus.REGISTERED, None),
            (100003, "Driver 3", "3", "Team C", DriverStatus.REGISTERED, None),
        ]),
    )
    create_race(
        session,
        subsession_id=23456,
        name="Monaco Grand Prix",
        track="Circuit de Monaco",
        category="Road",
        start_time=now - timedelta(hours=2),
        status=RaceStatus.LIVE,
        participants=_drivers([
            (200001, "Driver A", "10", "Team X", DriverStatus.RACING, None),
            (200002, "Driver B", "20", "Team Y", DriverStatus.RACING, None),
            (200003, "Driver C", "30", "Team Z", DriverStatus.DNF, None),
        ]),
    )
    completed = create_race(
        session,
        subsession_id=34567,
        name="Nürburgring 24h",
        track="Nürburgring",
        category="Road",
        start_time=now - timedelta(days=3),
        status=RaceStatus.COMPLETED,
        participants=_drivers([
            (300001, "Driver Alpha", "100", "Team Alpha", DriverStatus.FINISHED, 0),
            (300002, "Driver Beta", "200", "Team Beta", DriverStatus.FINISHED, 1),
            (300003, "Driver Gamma", "300", "Team Gamma", DriverStatus.FINISHED, 2),
        ]),
    )
    completed.end_time = now - timedelta(days=2)
    completed.winning_position = 0
    completed.settled_at = completed.end_time

    session.add_all([
        Bet(
            user_id=john.id,
            race_id=upcoming.id,
            driver_id=upcoming.participants[0].id,
            amount=0.5,
            odds=2.5,
            status=BetStatus.CONFIRMED,
            tx_signature="tx_sig_123456789",
        ),
        # 払い戻し済みの勝ちベット
        Bet(
            user_id=jane.id,
            race_id=completed.id,
            driver_id=completed.participants[0].id,
            amount=1.0,
            odds=3.0,
            status=BetStatus.PAID_OUT,
            tx_signature="tx_sig_987654321",
            payout_tx_signature="payout_tx_123",
            payout_claimed_at=completed.end_time,
        ),
    ])
    session.flush()

    return {"users": 2, "races": 3, "bets": 2}
