"""SQLAlchemyベースクラス定義"""

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """現在のUTC時刻をnaiveなdatetimeで返す（全モデルの保存形式）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """すべてのモデルの基底クラス

    SQLAlchemy 2.0スタイルのDeclarativeBaseを使用。
    """

    pass
