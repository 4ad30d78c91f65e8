"""
flow.py

Interactive Google sign-in as a single state machine:
IDLE → AWAITING_SURFACE → AWAITING_RELAY → COMPLETED | FAILED,
with REDIRECTING when no authorization window can be used and the
current context is sent to the authorization URL instead.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from auth.errors import AuthError, AuthErrorReason
from auth.google_oauth import GoogleOAuthClient
from auth.models import Credential, Identity, _utc_now
from auth.relay import RelayChannel, RelayMessage, RelayMessageType
from auth.surface import AuthSurface, Navigator, SurfaceOpener
from auth.token_store import TokenStore

_log = logging.getLogger("jobtrack.auth.flow")


class FlowState(str, Enum):
    IDLE = "idle"
    AWAITING_SURFACE = "awaiting_surface"
    AWAITING_RELAY = "awaiting_relay"
    REDIRECTING = "redirecting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AuthorizationAttempt:
    """One in-flight interactive sign-in."""

    relay: asyncio.Future
    surface: AuthSurface | None = None
    completed: bool = False

    def deliver(self, message: RelayMessage) -> None:
        """Resolve the attempt with a relay message; later messages are ignored."""
        if self.completed or self.relay.done():
            return
        self.completed = True
        self.relay.set_result(message)

    def cancel(self) -> None:
        """Fail the attempt because the surface closed first."""
        if self.completed or self.relay.done():
            return
        self.completed = True
        self.relay.set_exception(AuthError(AuthErrorReason.CANCELLED))


class AuthorizationFlow:
    """
    Drives interactive sign-in and the code-for-token exchange.

    Args:
        client: Google endpoint client.
        store: Token store that receives the issued credential.
        channel: Relay channel the callback context posts to.
        opener: Creates the authorization window.
        navigator: Full-page redirect fallback.
        popup_grace_seconds: A surface that reports closed this soon after
            opening is treated as blocked.
        poll_interval_seconds: How often to check whether the surface closed.
        clock: Source of the current UTC time.

    Example:
        flow = AuthorizationFlow(client, store, channel, opener, navigator)
        identity = await flow.sign_in()
    """

    def __init__(
        self,
        client: GoogleOAuthClient,
        store: TokenStore,
        channel: RelayChannel,
        opener: SurfaceOpener,
        navigator: Navigator,
        popup_grace_seconds: float = 0.5,
        poll_interval_seconds: float = 1.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._client = client
        self._store = store
        self._channel = channel
        self._opener = opener
        self._navigator = navigator
        self._grace = popup_grace_seconds
        self._poll = poll_interval_seconds
        self._clock = clock
        self._state = FlowState.IDLE
        self._pending: asyncio.Task | None = None

    @property
    def state(self) -> FlowState:
        return self._state

    async def sign_in(self) -> Identity | None:
        """
        Run interactive sign-in.

        A call made while another sign-in is in flight joins that attempt
        rather than opening a second window.

        Returns:
            The signed-in Identity, or None when the flow fell back to a
            full-page redirect and will resume from the callback.

        Raises:
            AuthError: CANCELLED, DENIED or EXCHANGE_FAILED.
        """
        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._run_attempt())
        return await asyncio.shield(self._pending)

    async def complete_with_code(self, code: str) -> Identity:
        """
        Exchange an authorization code, persist the tokens and fetch the identity.

        Args:
            code: Authorization code from the callback.

        Returns:
            The signed-in Identity.

        Raises:
            AuthError: EXCHANGE_FAILED if any provider call fails.
        """
        issued_at = self._clock()
        payload = await asyncio.to_thread(self._client.exchange_code_for_token, code)
        credential = Credential.from_token_response(payload, issued_at)
        self._store.save(credential)

        identity = await asyncio.to_thread(self._client.fetch_identity, credential.access_token)
        _log.info("Sign-in complete for %s", identity.email)
        return identity

    async def _run_attempt(self) -> Identity | None:
        loop = asyncio.get_running_loop()
        attempt = AuthorizationAttempt(relay=loop.create_future())
        url = self._client.get_authorization_url()

        def on_message(message: RelayMessage) -> None:
            # May run on the callback server thread.
            loop.call_soon_threadsafe(attempt.deliver, message)

        self._state = FlowState.AWAITING_SURFACE
        unsubscribe = self._channel.subscribe(on_message)
        watcher: asyncio.Task | None = None
        try:
            attempt.surface = self._opener.open(url)
            if attempt.surface is None or await self._closed_within_grace(attempt):
                self._redirect(url)
                return None

            self._state = FlowState.AWAITING_RELAY
            watcher = asyncio.ensure_future(self._watch_surface(attempt))
            message = await attempt.relay
            attempt.surface.close()

            if message.type is RelayMessageType.AUTH_ERROR:
                _log.warning("Provider returned sign-in error: %s", message.error)
                raise AuthError(AuthErrorReason.DENIED, detail=message.error or None)

            identity = await self.complete_with_code(message.code or "")
            self._state = FlowState.COMPLETED
            return identity
        except AuthError as exc:
            self._state = FlowState.FAILED
            _log.warning("Sign-in failed: %s", exc.reason.value)
            raise
        except BaseException:
            self._state = FlowState.FAILED
            raise
        finally:
            unsubscribe()
            if watcher is not None:
                watcher.cancel()
            if attempt.surface is not None and not attempt.surface.closed:
                attempt.surface.close()

    async def _closed_within_grace(self, attempt: AuthorizationAttempt) -> bool:
        """Popup-blocked heuristic: the surface closed itself right after opening."""
        await asyncio.sleep(self._grace)
        if attempt.relay.done():
            return False
        return attempt.surface is None or attempt.surface.closed

    async def _watch_surface(self, attempt: AuthorizationAttempt) -> None:
        while not attempt.relay.done():
            if attempt.surface is None or attempt.surface.closed:
                # Let a relay already queued from another thread win the race.
                await asyncio.sleep(0)
                attempt.cancel()
                return
            await asyncio.sleep(self._poll)

    def _redirect(self, url: str) -> None:
        self._state = FlowState.REDIRECTING
        _log.info("Authorization window unavailable; redirecting current context")
        self._navigator.navigate(url)
