"""
surface.py

Interfaces for the places a sign-in can happen: an authorization surface
opened beside the current context (a browser window), and a navigator
that moves the current context itself to a URL (full-page redirect).
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import TextIO


class AuthSurface(ABC):
    """An opened authorization window."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once the surface is gone, whether closed by us or by the user."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the surface. Must be idempotent."""
        ...


class SurfaceOpener(ABC):
    """Creates authorization surfaces."""

    @abstractmethod
    def open(self, url: str) -> AuthSurface | None:
        """
        Open a surface showing url.

        Args:
            url: The authorization URL.

        Returns:
            The opened surface, or None if one could not be created (blocked).
        """
        ...


class Navigator(ABC):
    """Moves the current context to another URL."""

    @abstractmethod
    def navigate(self, url: str) -> None:
        ...


class ConsoleNavigator(Navigator):
    """
    Full-page redirect for a terminal: there is no page to unload, so the
    user is shown the URL and told how to resume once Google redirects back.

    Args:
        stream: Where to print instructions (stdout by default).
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def navigate(self, url: str) -> None:
        out = self._stream or sys.stdout
        print("Google sign-in required.", file=out)
        print(f"Open this URL in your browser: {url}", file=out)
        print(
            "After approving, copy the address your browser was sent to and run:\n"
            '  python main.py resume "<that address>"',
            file=out,
        )
