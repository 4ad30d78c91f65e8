"""
models.py

Credential and Identity records shared by the token store,
the sign-in flow and the refresher, plus the UTC time helpers
used to derive and persist expiry instants.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from auth.errors import AuthError, AuthErrorReason


def _utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_iso_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp string to an aware UTC datetime."""
    if not value:
        return None

    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = f"{normalized[:-1]}+00:00"

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def _iso_utc(value: datetime) -> str:
    """Format an aware datetime as an ISO UTC string."""
    return value.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True)
class Credential:
    """
    Tokens issued by the provider.

    Attributes:
        access_token: Bearer token for API calls.
        refresh_token: Long-lived token for renewal; providers may omit it on refresh.
        expires_at: Absolute expiry (aware UTC), or None when unknown.
    """

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        """Return True if an access token is present and not yet expired."""
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        return (now or _utc_now()) < self.expires_at

    @classmethod
    def from_token_response(
        cls,
        payload: dict[str, Any],
        issued_at: datetime,
        failure: AuthErrorReason = AuthErrorReason.EXCHANGE_FAILED,
    ) -> Credential:
        """
        Build a Credential from a token-endpoint response.

        The expiry is issuance time plus the provider's expires_in; a response
        without a usable expires_in is rejected rather than guessed.

        Args:
            payload: Decoded JSON body of the token endpoint.
            issued_at: When the request was issued (aware UTC).
            failure: Reason to raise with when the payload is unusable.

        Returns:
            The new Credential.

        Raises:
            AuthError: If access_token or expires_in is missing or invalid.
        """
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token.strip():
            raise AuthError(failure, message="Token response missing access_token")

        expires_in = payload.get("expires_in")
        if isinstance(expires_in, str):
            try:
                expires_in = float(expires_in.strip())
            except ValueError:
                expires_in = None
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
            raise AuthError(failure, message="Token response missing expires_in")
        expires_in = int(expires_in) if math.isfinite(expires_in) else 0
        if expires_in <= 0:
            raise AuthError(failure, message="Token response missing expires_in")

        refresh_token = payload.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token.strip():
            refresh_token = None

        return cls(
            access_token=access_token.strip(),
            refresh_token=refresh_token,
            expires_at=issued_at + timedelta(seconds=expires_in),
        )


@dataclass(frozen=True)
class Identity:
    """The signed-in user as reported by the identity endpoint."""

    id: str
    email: str
    display_name: str
    avatar_url: str | None = None

    @classmethod
    def from_userinfo(cls, payload: dict[str, Any]) -> Identity:
        """Map an identity-endpoint response {id, email, name, picture?} 1:1."""
        return cls(
            id=str(payload.get("id") or ""),
            email=str(payload.get("email") or ""),
            display_name=str(payload.get("name") or ""),
            avatar_url=payload.get("picture") or None,
        )
