"""Betモデル定義"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from racebet.constants import BetStatus
from racebet.models.base import Base, utcnow

if TYPE_CHECKING:
    from racebet.models.driver import Driver
    from racebet.models.race import Race
    from racebet.models.user import User


class Bet(Base):
    """ベットモデル

    状態は PENDING/CONFIRMED -> WON | LOST -> (WON) PAID_OUT の順にしか
    進まない。遷移は ``SQLAlchemyBetStore`` の条件付きUPDATEで書き込むので、
    それ以外の場所で ``status`` を直接代入しないこと。

    Attributes:
        id: 自動採番ID（主キー）
        user_id: ユーザーID（外部キー）
        race_id: レースID（外部キー）
        driver_id: ドライバーID（外部キー）
        amount: 賭け金（SOL）
        odds: ベット時の倍率
        status: PENDING / CONFIRMED / WON / LOST / PAID_OUT
        tx_signature: 賭け金送金の署名（ユニーク）
        payout_tx_signature: 払い戻し送金の署名（送信前に記録する）
        payout_blockhash: 払い戻し送金に使ったブロックハッシュ
        payout_claimed_at: 払い戻しを確保した時刻
    """

    __tablename__ = "bets"

    __table_args__ = (
        Index("ix_bets_race_id_status", "race_id", "status"),
        Index("ix_bets_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    race_id: Mapped[int] = mapped_column(ForeignKey("races.id"), nullable=False)
    driver_id: Mapped[int] = mapped_column(ForeignKey("drivers.id"), nullable=False)
    amount: Mapped[float] = mapped_column(nullable=False)
    odds: Mapped[float] = mapped_column(nullable=False)
    status: Mapped[BetStatus] = mapped_column(
        Enum(BetStatus, native_enum=False, length=16),
        default=BetStatus.PENDING,
        nullable=False,
    )
    tx_signature: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    payout_tx_signature: Mapped[str | None] = mapped_column(String, nullable=True)
    payout_blockhash: Mapped[str | None] = mapped_column(String, nullable=True)
    payout_claimed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    # リレーションシップ
    user: Mapped["User"] = relationship("User", back_populates="bets")
    race: Mapped["Race"] = relationship("Race", back_populates="bets")
    driver: Mapped["Driver"] = relationship("Driver")

    def __repr__(self) -> str:
        return f"<Bet(id={self.id!r}, status={self.status!r})>"
