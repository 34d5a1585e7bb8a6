"""永続化リポジトリ"""

from racebet.repositories.bet_store import SQLAlchemyBetStore

__all__ = ["SQLAlchemyBetStore"]
