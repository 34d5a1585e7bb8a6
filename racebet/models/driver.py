"""Driverモデル定義"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from racebet.constants import DriverStatus
from racebet.models.base import Base, utcnow

if TYPE_CHECKING:
    from racebet.models.race import Race


class Driver(Base):
    """出走ドライバーモデル

    1行は1つのレースに属する。同じiRacingメンバーが2つのレースに
    出走する場合は2行になる。

    Attributes:
        id: 自動採番ID（主キー）
        race_id: レースID（外部キー）
        iracing_id: iRacingのメンバーID
        name: 表示名
        car_number: カーナンバー
        team_name: チーム名（任意）
        status: REGISTERED / RACING / FINISHED / DNF / DSQ
        finish_position: 0始まりの着順（0が1着）。結果の記録前と
            着順がつかなかった場合はNULL
    """

    __tablename__ = "drivers"

    __table_args__ = (
        UniqueConstraint("race_id", "iracing_id", name="uq_drivers_race_iracing"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    race_id: Mapped[int] = mapped_column(ForeignKey("races.id"), nullable=False, index=True)
    iracing_id: Mapped[int] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    car_number: Mapped[str] = mapped_column(String, nullable=False)
    team_name: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[DriverStatus] = mapped_column(
        Enum(DriverStatus, native_enum=False, length=16),
        default=DriverStatus.REGISTERED,
        nullable=False,
    )
    finish_position: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    race: Mapped["Race"] = relationship("Race", back_populates="participants")

    def __repr__(self) -> str:
        return f"<Driver(id={self.id!r}, name={self.name!r}, race_id={self.race_id!r})>"
