"""
token_store.py

Holds the current access token, refresh token and expiry instant,
mirrored to an injected KeyValueStorage under fixed well-known keys
so the credential survives process restarts.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import logging
from datetime import datetime

from auth.models import Credential, _iso_utc, _parse_iso_datetime
from auth.storage import KeyValueStorage

ACCESS_TOKEN_KEY = "google_access_token"
REFRESH_TOKEN_KEY = "google_refresh_token"
TOKEN_EXPIRY_KEY = "google_token_expiry"

_ALL_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, TOKEN_EXPIRY_KEY)

_log = logging.getLogger("jobtrack.auth.token_store")


class TokenStore:
    """
    Owner of the persisted Credential.

    Only the sign-in flow (on issuance) and the refresher (on renewal)
    call save(); sign-out calls clear().

    Args:
        storage: Persistence backend.

    Example:
        store = TokenStore(MemoryStorage())
        store.save(Credential("ya29...", "1//0g...", expires_at))
        store.is_valid()
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._credential: Credential | None = None

    @property
    def credential(self) -> Credential | None:
        """The credential loaded or saved last, or None."""
        return self._credential

    @property
    def access_token(self) -> str | None:
        return self._credential.access_token if self._credential else None

    @property
    def refresh_token(self) -> str | None:
        return self._credential.refresh_token if self._credential else None

    def load(self) -> Credential | None:
        """
        Read persisted credential fragments.

        Partial state (no access token, missing or unparseable expiry) is
        tolerated and treated as no valid credential.

        Returns:
            The stored Credential, or None.
        """
        access_token = (self._storage.get(ACCESS_TOKEN_KEY) or "").strip()
        refresh_token = (self._storage.get(REFRESH_TOKEN_KEY) or "").strip() or None
        raw_expiry = self._storage.get(TOKEN_EXPIRY_KEY)
        expires_at = _parse_iso_datetime(raw_expiry)

        if not access_token or expires_at is None:
            if access_token or refresh_token or raw_expiry:
                _log.warning("Ignoring partial stored credential")
            self._credential = None
            return None

        self._credential = Credential(access_token, refresh_token, expires_at)
        return self._credential

    def save(self, credential: Credential) -> Credential:
        """
        Persist all credential fields in one storage write.

        A credential without a refresh token keeps the refresh token
        already stored, since providers may omit it on renewal.

        Args:
            credential: The newly issued or renewed credential.

        Returns:
            The credential as stored (with any preserved refresh token).
        """
        refresh_token = credential.refresh_token
        if not refresh_token:
            refresh_token = (self._storage.get(REFRESH_TOKEN_KEY) or "").strip() or None

        stored = Credential(credential.access_token, refresh_token, credential.expires_at)

        values = {ACCESS_TOKEN_KEY: stored.access_token}
        stale: list[str] = []
        if stored.refresh_token:
            values[REFRESH_TOKEN_KEY] = stored.refresh_token
        if stored.expires_at is not None:
            values[TOKEN_EXPIRY_KEY] = _iso_utc(stored.expires_at)
        else:
            stale.append(TOKEN_EXPIRY_KEY)
        self._storage.set_many(values, delete=stale)

        self._credential = stored
        _log.info("Credential saved (refresh token %s)", "present" if refresh_token else "absent")
        return stored

    def clear(self) -> None:
        """Remove all persisted fields. Safe to call repeatedly."""
        self._storage.delete_many(_ALL_KEYS)
        self._credential = None
        _log.info("Credential cleared")

    def is_valid(self, now: datetime | None = None) -> bool:
        """Return True if the current credential has a non-expired access token."""
        if self._credential is None:
            return False
        return self._credential.is_valid(now)
