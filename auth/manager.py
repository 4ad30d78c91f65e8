"""
manager.py

Central sign-in manager for JobTrack.
Wires the token store, Google client, sign-in flow, refresher and
callback server together and exposes the operations the app calls.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable
from urllib.parse import parse_qs, urlsplit

import config
from auth.callback_server import BrowserSurfaceOpener, CallbackServer
from auth.errors import AuthError, AuthErrorReason
from auth.flow import AuthorizationFlow
from auth.google_oauth import GoogleOAuthClient
from auth.models import Identity, _iso_utc, _utc_now
from auth.relay import RelayChannel
from auth.storage import JsonFileStorage
from auth.surface import ConsoleNavigator, Navigator, SurfaceOpener
from auth.token_manager import TokenManager
from auth.token_store import TokenStore

_log = logging.getLogger("jobtrack.auth.manager")


class AuthManager:
    """
    Entry point for everything auth-related in the app.

    Args:
        store: Token store; load() is called on construction.
        client: Google endpoint client.
        flow: Interactive sign-in state machine.
        tokens: Refresher handing out valid access tokens.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        store: TokenStore,
        client: GoogleOAuthClient,
        flow: AuthorizationFlow,
        tokens: TokenManager,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.client = client
        self.flow = flow
        self.tokens = tokens
        self._clock = clock
        self.store.load()

    async def sign_in(self) -> Identity | None:
        """
        Start interactive sign-in.

        Returns:
            The Identity, or None if the flow moved to a full-page redirect.
        """
        _log.info("Sign-in requested")
        return await self.flow.sign_in()

    async def resume_from_url(self, url: str) -> Identity | None:
        """
        Application-root startup logic after a full-page redirect.

        Args:
            url: The URL the app was loaded with (root or callback target).

        Returns:
            The Identity if the URL carried a code, None if it carried neither
            a code nor an error.

        Raises:
            AuthError: DENIED when the URL carries an error, EXCHANGE_FAILED
                when the exchange fails.
        """
        query = parse_qs(urlsplit(url).query)
        error = (query.get("error") or [""])[0]
        code = (query.get("code") or [""])[0]

        if error:
            _log.warning("Redirect returned sign-in error: %s", error)
            raise AuthError(AuthErrorReason.DENIED, detail=error)
        if not code:
            return None

        _log.info("Completing sign-in from redirect")
        return await self.flow.complete_with_code(code)

    async def get_valid_access_token(self) -> str:
        return await self.tokens.get_valid_access_token()

    async def get_user_info(self) -> Identity:
        """Fetch the signed-in user's identity with a valid access token."""
        token = await self.tokens.get_valid_access_token()
        return await asyncio.to_thread(self.client.fetch_identity, token)

    def is_authenticated(self) -> bool:
        """Return True if a non-expired access token is stored."""
        return self.store.is_valid(self._clock())

    def sign_out(self, revoke: bool = False) -> None:
        """
        Forget the stored credential.

        Args:
            revoke: Also ask Google to revoke the token (best effort).
        """
        token = self.store.refresh_token or self.store.access_token
        if revoke and token:
            self.client.revoke_token(token)
        self.store.clear()
        _log.info("Signed out")

    def get_status(self) -> dict:
        """
        Return sign-in status.

        Returns:
            Dict with login status and metadata.
        """
        credential = self.store.credential
        expires_at = credential.expires_at if credential else None
        return {
            "logged_in": self.is_authenticated(),
            "expires_at": _iso_utc(expires_at) if expires_at else "",
            "has_refresh_token": bool(credential and credential.refresh_token),
            "flow_state": self.flow.state.value,
        }


def build_auth_manager(
    opener: SurfaceOpener | None = None,
    navigator: Navigator | None = None,
) -> AuthManager:
    """
    Build an AuthManager wired to Google, the token file and the browser.

    Args:
        opener: Override the browser-window opener.
        navigator: Override the full-page redirect fallback.

    Returns:
        A ready AuthManager.
    """
    client = GoogleOAuthClient(
        client_id=config.GOOGLE_CLIENT_ID,
        redirect_uri=config.GOOGLE_REDIRECT_URI,
        scopes=config.GOOGLE_SCOPES,
        client_secret=config.GOOGLE_CLIENT_SECRET,
        timeout=config.http_timeout(),
    )
    store = TokenStore(JsonFileStorage(config.TOKEN_STORE_PATH))
    channel = RelayChannel(config.APP_ROOT_URL)

    if opener is None:
        server = CallbackServer(config.GOOGLE_REDIRECT_URI, config.APP_ROOT_URL)
        opener = BrowserSurfaceOpener(server, channel, config.CALLBACK_TIMEOUT_SECONDS)

    flow = AuthorizationFlow(
        client,
        store,
        channel,
        opener,
        navigator or ConsoleNavigator(),
        popup_grace_seconds=config.POPUP_GRACE_SECONDS,
        poll_interval_seconds=config.SURFACE_POLL_SECONDS,
    )
    return AuthManager(store, client, flow, TokenManager(store, client))
