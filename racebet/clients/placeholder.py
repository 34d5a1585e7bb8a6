"""Offline race-data source used when iRacing credentials are not configured."""

from racebet.errors import AuthorizationError
from racebet.models.results import AuthTokens, IRacingProfile, RaceResults

PLACEHOLDER_PROFILE = IRacingProfile(
    cust_id=0,
    email="placeholder@racebet.local",
    display_name="Placeholder Driver",
)

PLACEHOLDER_SERIES: tuple[dict, ...] = (
    {"series_id": 1, "series_name": "Placeholder Oval Series", "category": "Oval"},
    {"series_id": 2, "series_name": "Placeholder Road Series", "category": "Road"},
)


class PlaceholderRaceDataSource:
    """Race-data source returning fixed placeholder values.

    Only reads are served. Results are never available, so races stay in
    their current state until real credentials are configured, and
    sign-in is refused.
    """

    def exchange_code_for_tokens(self, code: str) -> AuthTokens:
        raise AuthorizationError("iRacing sign-in is not configured")

    def get_profile(self) -> IRacingProfile:
        return PLACEHOLDER_PROFILE

    def get_user_races(self, cust_id: int) -> dict:
        return {"cust_id": cust_id, "races": []}

    def get_race_results(self, subsession_id: int) -> RaceResults | None:
        return None

    def get_active_series(self) -> list[dict]:
        return [dict(series) for series in PLACEHOLDER_SERIES]
