"""
relay.py

Point-to-point channel that carries the authorization outcome from the
callback context back to the context that started sign-in.
Both ends are origin-checked: a message is never delivered to, nor
accepted from, an origin other than the channel's own.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping
from urllib.parse import urlsplit

_log = logging.getLogger("jobtrack.auth.relay")

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_origin(url: str) -> str:
    """
    Reduce a URL to its origin: scheme://host[:port].

    Default ports are dropped and scheme/host are lower-cased, so
    "HTTP://LocalHost:80/x" and "http://localhost" compare equal.

    Args:
        url: Any absolute URL or bare origin.

    Returns:
        The normalized origin, or "" when url has no scheme/host.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return ""

    try:
        port = parts.port
    except ValueError:
        return ""

    if ":" in host:
        host = f"[{host}]"
    if port is None or port == _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


class RelayMessageType(str, Enum):
    AUTH_SUCCESS = "AUTH_SUCCESS"
    AUTH_ERROR = "AUTH_ERROR"


@dataclass(frozen=True)
class RelayMessage:
    """
    Authorization outcome relayed between contexts.

    Wire form is {"type": "AUTH_SUCCESS", "code": ...} or
    {"type": "AUTH_ERROR", "error": ...}.
    """

    type: RelayMessageType
    code: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, code: str) -> RelayMessage:
        return cls(RelayMessageType.AUTH_SUCCESS, code=code)

    @classmethod
    def failure(cls, error: str) -> RelayMessage:
        return cls(RelayMessageType.AUTH_ERROR, error=error)

    def to_dict(self) -> dict[str, str]:
        if self.type is RelayMessageType.AUTH_SUCCESS:
            return {"type": self.type.value, "code": self.code or ""}
        return {"type": self.type.value, "error": self.error or ""}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RelayMessage | None:
        """Parse the wire form; returns None for anything unrecognized."""
        kind = data.get("type")
        if kind == RelayMessageType.AUTH_SUCCESS.value and data.get("code"):
            return cls.success(str(data["code"]))
        if kind == RelayMessageType.AUTH_ERROR.value:
            return cls.failure(str(data.get("error") or ""))
        return None


RelayListener = Callable[[RelayMessage], None]


class RelayChannel:
    """
    Same-origin message channel owned by the initiating context.

    Listeners are called synchronously on the posting thread, which may be
    the callback server's request thread; listeners must hand off to their
    own event loop if they need one.

    Args:
        origin: Origin of the owning context (any URL on it is accepted).

    Example:
        channel = RelayChannel("http://localhost:8080")
        unsubscribe = channel.subscribe(print)
        channel.post(RelayMessage.success("4/0A..."),
                     target_origin="http://localhost:8080",
                     sender_origin="http://localhost:8080")
        unsubscribe()
    """

    def __init__(self, origin: str) -> None:
        self.origin = normalize_origin(origin)
        if not self.origin:
            raise ValueError(f"Relay channel needs an absolute origin, got {origin!r}")
        self._listeners: list[RelayListener] = []
        self._lock = threading.Lock()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: RelayListener) -> Callable[[], None]:
        """
        Register a listener for accepted messages.

        Args:
            listener: Called with each accepted RelayMessage.

        Returns:
            A callable that removes the listener; calling it twice is harmless.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def post(
        self,
        message: RelayMessage | Mapping[str, Any],
        *,
        target_origin: str,
        sender_origin: str,
    ) -> bool:
        """
        Deliver a message to every listener if both origins match the channel.

        Args:
            message: The outcome to relay, either a RelayMessage or its wire
                form as sent by the callback page.
            target_origin: Origin the sender restricts delivery to.
            sender_origin: Origin of the posting context.

        Returns:
            True if the message was delivered, False if it was dropped.
        """
        if normalize_origin(target_origin) != self.origin:
            _log.warning("Relay message not sent: target origin %s is foreign", target_origin)
            return False
        if normalize_origin(sender_origin) != self.origin:
            _log.warning("Relay message ignored: sender origin %s is foreign", sender_origin)
            return False

        if not isinstance(message, RelayMessage):
            parsed = RelayMessage.from_dict(message)
            if parsed is None:
                _log.warning("Relay message ignored: unrecognized payload type %r", message.get("type"))
                return False
            message = parsed

        with self._lock:
            listeners = list(self._listeners)

        _log.info("Relaying %s to %d listener(s)", message.type.value, len(listeners))
        for listener in listeners:
            listener(message)
        return True
