"""Userモデル定義"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from racebet.models.base import Base, utcnow

if TYPE_CHECKING:
    from racebet.models.bet import Bet


class User(Base):
    """ユーザーモデル

    iRacingでの初回サインイン時に作成し、プロフィールが変わったら
    更新する。物理削除はしない。

    Attributes:
        id: 自動採番ID（主キー）
        email: メールアドレス（ユニーク）
        name: 表示名
        iracing_id: iRacingのメンバーID（ユニーク、任意）
        wallet_address: 払い戻し先のSolana公開鍵（任意）
        created_at: 作成日時
        updated_at: 更新日時
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    iracing_id: Mapped[int | None] = mapped_column(unique=True, nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    bets: Mapped[list["Bet"]] = relationship("Bet", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, email={self.email!r})>"
