"""External race-data clients.

``build_race_data_source`` is the single place where the real iRacing
client or the placeholder source is chosen.
"""

import logging

from racebet.clients.base import BaseApiClient
from racebet.clients.iracing import IRacingClient
from racebet.clients.placeholder import PlaceholderRaceDataSource
from racebet.clients.token_cache import TokenCache
from racebet.config import Settings

logger = logging.getLogger(__name__)


def build_race_data_source(settings: Settings) -> IRacingClient | PlaceholderRaceDataSource:
    """Select the race-data implementation for the given settings.

    Args:
        settings: Application settings.

    Returns:
        ``IRacingClient`` when client id, secret and redirect URI are all
        set, otherwise ``PlaceholderRaceDataSource``.
    """
    if settings.is_iracing_configured:
        return IRacingClient(
            client_id=settings.iracing_client_id,
            client_secret=settings.iracing_client_secret,
            redirect_uri=settings.iracing_redirect_uri,
            refresh_token=settings.iracing_refresh_token or None,
        )

    logger.warning("iRacing API credentials not configured, using placeholder data")
    return PlaceholderRaceDataSource()


__all__ = [
    "BaseApiClient",
    "IRacingClient",
    "PlaceholderRaceDataSource",
    "TokenCache",
    "build_race_data_source",
]
