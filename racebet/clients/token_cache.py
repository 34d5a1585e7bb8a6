"""OAuth2 token cache value object."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from racebet.constants import TOKEN_EXPIRY_MARGIN_SECONDS
from racebet.models.results import AuthTokens


@dataclass(frozen=True)
class TokenCache:
    """Cached access/refresh token pair with its effective expiry.

    The expiry is pulled forward by a safety margin so a token is
    refreshed before the upstream rejects it.

    Attributes:
        access_token: Bearer token for API calls.
        refresh_token: Token used to obtain a new access token, if issued.
        expires_at: Naive UTC time after which the token is treated as expired.
    """

    access_token: str
    refresh_token: str | None
    expires_at: datetime

    @classmethod
    def from_tokens(
        cls,
        tokens: AuthTokens,
        now: datetime,
        margin_seconds: int = TOKEN_EXPIRY_MARGIN_SECONDS,
    ) -> "TokenCache":
        """Build a cache entry from a token response received at ``now``."""
        return cls(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=now + timedelta(seconds=tokens.expires_in - margin_seconds),
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
