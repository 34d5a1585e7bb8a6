"""データモデルパッケージ"""

from racebet.models.base import Base
from racebet.models.bet import Bet
from racebet.models.driver import Driver
from racebet.models.race import Race
from racebet.models.results import (
    AuthTokens,
    IRacingProfile,
    RaceResults,
    ResultRow,
)
from racebet.models.user import User

__all__ = [
    "AuthTokens",
    "Base",
    "Bet",
    "Driver",
    "IRacingProfile",
    "Race",
    "RaceResults",
    "ResultRow",
    "User",
]
