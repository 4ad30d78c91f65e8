"""
callback_server.py

Local HTTP server that catches OAuth2 redirect callbacks.
Listens on the host/port of GOOGLE_REDIRECT_URI and hands every request
carrying a `code` or `error` to the CallbackReceiver, which relays the
outcome to the waiting sign-in or redirects to the application root.
Also provides the browser-window authorization surface built on it.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import html
import logging
import threading
import time
import webbrowser
from dataclasses import dataclass, field
from enum import Enum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from auth.relay import RelayChannel, RelayMessage, normalize_origin
from auth.surface import AuthSurface, Navigator, SurfaceOpener

_log = logging.getLogger("jobtrack.auth.callback")


class CallbackOutcome(str, Enum):
    RELAYED = "relayed"
    REDIRECTED = "redirected"
    IGNORED = "ignored"


def _first_param(query: dict[str, list[str]], name: str) -> str | None:
    values = query.get(name)
    if not values:
        return None
    return values[0] or None


def _append_query(url: str, params: dict[str, str]) -> str:
    """Append params to url's query string, keeping any existing parameters."""
    parts = urlsplit(url)
    extra = urlencode(params)
    query = f"{parts.query}&{extra}" if parts.query else extra
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", query, parts.fragment))


class CallbackReceiver:
    """
    Runs in the context loaded at the redirect target.

    With an opener channel the outcome is relayed to it and this context
    closes; without one the current context is sent back to the
    application root with `code` or `error` appended, so the root's
    startup logic finishes the exchange.

    Args:
        origin: Origin of this context; also the only relay target allowed.
        app_root_url: Where to go when no opener exists.
        navigator: Moves this context in the no-opener case.
    """

    def __init__(self, origin: str, app_root_url: str, navigator: Navigator) -> None:
        self.origin = normalize_origin(origin)
        self.app_root_url = app_root_url
        self._navigator = navigator

    def receive(self, url: str, opener: RelayChannel | None) -> CallbackOutcome:
        """
        Inspect url for `code` / `error` and act on it.

        Args:
            url: Full URL this context was loaded with.
            opener: Channel to the initiating context, or None.

        Returns:
            What was done with the callback.
        """
        query = parse_qs(urlsplit(url).query)
        code = _first_param(query, "code")
        error = _first_param(query, "error")

        if not code and not error:
            return CallbackOutcome.IGNORED

        if opener is not None:
            message = RelayMessage.failure(error) if error else RelayMessage.success(code or "")
            delivered = opener.post(
                message.to_dict(), target_origin=self.origin, sender_origin=self.origin
            )
            return CallbackOutcome.RELAYED if delivered else CallbackOutcome.IGNORED

        params = {"error": error} if error else {"code": code or ""}
        target = _append_query(self.app_root_url, params)
        _log.info("No opener for callback; returning to application root")
        self._navigator.navigate(target)
        return CallbackOutcome.REDIRECTED


class _RedirectCapture(Navigator):
    """Records the navigation target so it can be sent as an HTTP redirect."""

    def __init__(self) -> None:
        self.target: str | None = None

    def navigate(self, url: str) -> None:
        self.target = url


@dataclass
class CallbackResponse:
    status: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)


_CLOSE_PAGE = """<!doctype html>
<html>
<head><title>Sign-in complete</title></head>
<body style="font-family: sans-serif; padding: 40px;">
<p>You can close this window and return to JobTrack.</p>
<script>window.close();</script>
</body>
</html>
"""

_RESUME_PAGE = """<!doctype html>
<html>
<head><title>JobTrack sign-in</title></head>
<body style="font-family: sans-serif; padding: 40px;">
<h1>Almost done</h1>
<p>Finish signing in from your terminal:</p>
<pre>python main.py resume "{url}"</pre>
</body>
</html>
"""


class CallbackServer:
    """
    Threaded HTTP server on the redirect target.

    A sign-in attempt attaches its relay channel while it waits; callbacks
    arriving while nothing is attached are redirected to the app root.

    Args:
        redirect_uri: Registered redirect URI; its host and port are bound.
        app_root_url: Application root used for the no-opener path.

    Example:
        server = CallbackServer("http://localhost:8080/auth/callback",
                                "http://localhost:8080/")
        server.start()
        ...
        server.stop()
    """

    def __init__(self, redirect_uri: str, app_root_url: str) -> None:
        parts = urlsplit(redirect_uri)
        self.host = parts.hostname or "localhost"
        if parts.port is not None:
            self.port = parts.port
        else:
            self.port = 443 if parts.scheme == "https" else 80
        self.origin = normalize_origin(redirect_uri)
        self.app_root_url = app_root_url

        root = urlsplit(app_root_url)
        self._root_is_local = normalize_origin(app_root_url) == self.origin
        self._root_path = root.path or "/"

        self._opener: RelayChannel | None = None
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._httpd is not None

    @property
    def bound_port(self) -> int | None:
        """Port actually bound while running (differs from port when port is 0)."""
        return self._httpd.server_address[1] if self._httpd is not None else None

    @property
    def opener(self) -> RelayChannel | None:
        with self._lock:
            return self._opener

    def attach(self, channel: RelayChannel) -> None:
        """Route callbacks to channel until detach() is called."""
        with self._lock:
            self._opener = channel

    def detach(self, channel: RelayChannel | None = None) -> None:
        """Stop routing callbacks; with channel given, only if it is the attached one."""
        with self._lock:
            if channel is None or self._opener is channel:
                self._opener = None

    def start(self) -> None:
        """
        Bind and serve in a daemon thread. No-op if already running.

        Raises:
            OSError: If the port cannot be bound.
        """
        if self._httpd is not None:
            return

        server = self

        class _Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:  # noqa: N802
                response = server.handle(self.path)
                self.send_response(response.status)
                for name, value in response.headers.items():
                    self.send_header(name, value)
                body = response.body.encode("utf-8")
                if body:
                    self.send_header("Content-Type", "text/html; charset=utf-8")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                if body:
                    self.wfile.write(body)

            def log_message(self, format: str, *args) -> None:  # noqa: A002
                _log.debug("callback server: " + format, *args)

        self._httpd = ThreadingHTTPServer((self.host, self.port), _Handler)
        self._httpd.daemon_threads = True
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="jobtrack-callback", daemon=True
        )
        self._thread.start()
        _log.info("Callback server listening on %s:%d", self.host, self.port)

    def stop(self) -> None:
        """Shut the server down gracefully. No-op if not running."""
        httpd, self._httpd = self._httpd, None
        if httpd is None:
            return
        httpd.shutdown()
        httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        _log.info("Callback server stopped")

    def handle(self, path: str) -> CallbackResponse:
        """
        Produce the response for a GET of path (path plus query string).

        Args:
            path: Request target as received, e.g. "/auth/callback?code=...".

        Returns:
            The response to send.
        """
        url = f"{self.origin}{path}"
        request_path = urlsplit(url).path or "/"

        if self._root_is_local and request_path == self._root_path:
            return CallbackResponse(200, _RESUME_PAGE.format(url=html.escape(url)))

        navigator = _RedirectCapture()
        receiver = CallbackReceiver(self.origin, self.app_root_url, navigator)
        outcome = receiver.receive(url, self.opener)

        if outcome is CallbackOutcome.RELAYED:
            return CallbackResponse(200, _CLOSE_PAGE)
        if outcome is CallbackOutcome.REDIRECTED and navigator.target:
            return CallbackResponse(302, headers={"Location": navigator.target})
        return CallbackResponse(404, "<p>Not found</p>")


class BrowserSurface(AuthSurface):
    """
    Authorization window in the user's browser.

    The browser tab itself cannot be observed, so the surface counts as
    closed once the callback server stops or the wait deadline passes.
    """

    def __init__(
        self,
        server: CallbackServer,
        channel: RelayChannel,
        timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._server = server
        self._channel = channel
        self._clock = clock
        self._deadline = clock() + timeout_seconds
        self._closed = False

    @property
    def closed(self) -> bool:
        if self._closed or not self._server.running:
            return True
        return self._clock() >= self._deadline

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._server.detach(self._channel)
        self._server.stop()


class BrowserSurfaceOpener(SurfaceOpener):
    """
    Opens the authorization URL in the system browser, with the callback
    server attached to channel for the lifetime of the surface.

    Args:
        server: Callback server on the redirect target.
        channel: Relay channel of the initiating context.
        timeout_seconds: How long to wait for the user before treating the
            window as abandoned.
        browser_open: Function that opens a URL and reports success.
    """

    def __init__(
        self,
        server: CallbackServer,
        channel: RelayChannel,
        timeout_seconds: float,
        browser_open: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self._server = server
        self._channel = channel
        self._timeout = timeout_seconds
        self._browser_open = browser_open

    def open(self, url: str) -> AuthSurface | None:
        try:
            self._server.start()
        except OSError as exc:
            _log.error("Could not start callback server: %s", exc)
            return None

        self._server.attach(self._channel)
        if not self._browser_open(url):
            _log.info("Could not open browser automatically")
            self._server.detach(self._channel)
            self._server.stop()
            return None

        _log.info("Opened browser for Google sign-in")
        return BrowserSurface(self._server, self._channel, self._timeout)
