"""
auth — Authentication Module

Handles the Google OAuth2 sign-in flow (browser window or redirect),
the callback receiver that relays the authorization code back,
and centralized token storage/refresh for authenticated API calls.
Part of JobTrack — Personal Job Application Tracker.
"""

import logging

import config

_log = logging.getLogger("jobtrack.auth")
if not _log.handlers:
    _handler = logging.FileHandler(config.LOGS_DIR / "auth.log", encoding="utf-8")
    _handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s")
    )
    _log.addHandler(_handler)
    _log.setLevel(getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))
    _log.propagate = False

from auth.errors import AuthError, AuthErrorReason, describe_auth_error  # noqa: E402
from auth.manager import AuthManager, build_auth_manager  # noqa: E402
from auth.models import Credential, Identity  # noqa: E402

__all__ = [
    "AuthError",
    "AuthErrorReason",
    "AuthManager",
    "Credential",
    "Identity",
    "build_auth_manager",
    "describe_auth_error",
]
