"""Raceモデル定義"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Enum, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from racebet.constants import RaceStatus
from racebet.models.base import Base, utcnow

if TYPE_CHECKING:
    from racebet.models.bet import Bet
    from racebet.models.driver import Driver


class Race(Base):
    """レースモデル

    Attributes:
        id: 自動採番ID（主キー）
        subsession_id: iRacingのサブセッションID（ユニーク）
        name: レース名
        track: コース名
        category: カテゴリ（Oval, Road など）
        start_time: 開始予定時刻（UTC）
        end_time: 結果で報告されたセッション終了時刻（UTC）
        status: UPCOMING / LIVE / COMPLETED / CANCELLED
        winning_position: 結果全体で完走者の最小着順。結果の記録時に
            エントリー外のドライバーも含めて決める（完走者なしはNULL）
        settled_at: 精算待ちのベットがなくなった時刻
        created_at: 作成日時
        updated_at: 更新日時
    """

    __tablename__ = "races"

    __table_args__ = (
        Index("ix_races_status_start_time", "status", "start_time"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    subsession_id: Mapped[int] = mapped_column(unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    track: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(nullable=True)
    status: Mapped[RaceStatus] = mapped_column(
        Enum(RaceStatus, native_enum=False, length=16),
        default=RaceStatus.UPCOMING,
        nullable=False,
    )
    winning_position: Mapped[int | None] = mapped_column(nullable=True)
    settled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    # リレーションシップ
    participants: Mapped[list["Driver"]] = relationship(
        "Driver",
        back_populates="race",
        order_by="Driver.id",
        cascade="all, delete-orphan",
    )
    bets: Mapped[list["Bet"]] = relationship("Bet", back_populates="race")

    def __repr__(self) -> str:
        return f"<Race(id={self.id!r}, name={self.name!r}, status={self.status!r})>"
