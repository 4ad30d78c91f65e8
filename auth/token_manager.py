"""
token_manager.py

Hands out a valid access token for authenticated API calls.
Refreshes the stored token with the refresh_token grant when it has
expired, before the caller's request goes out.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from auth.errors import AuthError, AuthErrorReason
from auth.google_oauth import GoogleOAuthClient
from auth.models import Credential, _utc_now
from auth.token_store import TokenStore

_log = logging.getLogger("jobtrack.auth.token_manager")


class TokenManager:
    """
    Token refresher in front of the token store.

    Concurrent callers during an expired window each refresh on their own;
    the provider tolerates it and the last write to the store wins.

    Args:
        store: Token store holding the current credential.
        client: Google endpoint client used for renewal.
        clock: Source of the current UTC time.

    Example:
        manager = TokenManager(store, client)
        token = await manager.get_valid_access_token()
    """

    def __init__(
        self,
        store: TokenStore,
        client: GoogleOAuthClient,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._client = client
        self._clock = clock

    def is_expired(self) -> bool:
        """Return True if the stored token is missing or past its expiry."""
        return not self._store.is_valid(self._clock())

    async def get_valid_access_token(self) -> str:
        """
        Retrieve the current access token, refreshing it first if expired.

        Returns:
            A valid access token.

        Raises:
            AuthError: NO_CREDENTIAL if no access token was ever stored,
                REFRESH_FAILED if it expired and renewal is impossible or rejected.
        """
        access_token = self._store.access_token
        if not access_token:
            raise AuthError(AuthErrorReason.NO_CREDENTIAL)

        if self._store.is_valid(self._clock()):
            return access_token

        _log.info("Access token expired; refreshing")
        return await self.refresh()

    async def refresh(self) -> str:
        """
        Force-refresh the access token with the stored refresh token.

        Returns:
            The new access token.

        Raises:
            AuthError: REFRESH_FAILED if there is no refresh token or the
                provider rejects the renewal. The stored credential is
                cleared before raising.
        """
        refresh_token = self._store.refresh_token
        if not refresh_token:
            _log.warning("Refresh skipped: refresh_token missing; clearing credential")
            self._store.clear()
            raise AuthError(
                AuthErrorReason.REFRESH_FAILED,
                message="Token expired and no refresh token available",
            )

        issued_at = self._clock()
        try:
            payload = await asyncio.to_thread(self._client.refresh_access_token, refresh_token)
            credential = Credential.from_token_response(
                payload, issued_at, failure=AuthErrorReason.REFRESH_FAILED
            )
        except AuthError as exc:
            _log.warning("Refresh failed (%s); clearing credential", exc.detail or exc)
            self._store.clear()
            raise
        stored = self._store.save(credential)

        _log.info("Access token refreshed")
        return stored.access_token
