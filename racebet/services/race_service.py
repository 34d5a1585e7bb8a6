"""レース一覧と登録のサービス"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from racebet.constants import DriverStatus, RaceStatus
from racebet.errors import NotFoundError, ValidationError
from racebet.models import Driver, Race
from racebet.repositories.bet_store import SQLAlchemyBetStore


def list_races(session: Session) -> list[tuple[Race, int]]:
    """出走ドライバーとベット数付きのレースを開始時刻順に取得"""
    return SQLAlchemyBetStore(session).list_races()


def get_race(session: Session, race_id: int) -> Race:
    race = SQLAlchemyBetStore(session).get_race(race_id)
    if race is None:
        raise NotFoundError(f"Race {race_id} not found")
    return race


def create_race(
    session: Session,
    subsession_id: int,
    name: str,
    track: str,
    category: str,
    start_time: datetime,
    participants: list[dict] | None = None,
    status: RaceStatus = RaceStatus.UPCOMING,
) -> Race:
    """レースを出走ドライバーとともに作成する

    Args:
        session: DBセッション
        subsession_id: iRacingのサブセッションID（ユニーク）
        name: レース名
        track: コース名
        category: カテゴリ
        start_time: 開始予定時刻（naive UTC）
        participants: iracing_id, name, car_number と任意の team_name,
            status を持つドライバーの辞書のリスト
        status: 初期状態

    Raises:
        ValidationError: サブセッションが登録済み、またはドライバーが重複している場合
    """
    existing = session.execute(
        select(Race).where(Race.subsession_id == subsession_id)
    ).scalars().first()
    if existing is not None:
        raise ValidationError(f"Subsession {subsession_id} already registered")

    seen: set[int] = set()
    drivers = []
    for entry in participants or []:
        iracing_id = int(entry["iracing_id"])
        if iracing_id in seen:
            raise ValidationError(f"Driver {iracing_id} listed twice")
        seen.add(iracing_id)
        drivers.append(
            Driver(
                iracing_id=iracing_id,
                name=entry["name"],
                car_number=str(entry["car_number"]),
                team_name=entry.get("team_name"),
                status=DriverStatus(entry.get("status", DriverStatus.REGISTERED)),
                finish_position=entry.get("finish_position"),
            )
        )

    race = Race(
        subsession_id=subsession_id,
        name=name,
        track=track,
        category=category,
        start_time=start_time,
        status=status,
        participants=drivers,
    )
    session.add(race)
    session.flush()
    return race
