"""
config.py

Loads all environment variables from .env using python-dotenv.
Exposes them as typed constants grouped by section.
Required keys are validated on demand, not at import time.
Part of JobTrack — Personal Job Application Tracker.
"""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Load .env file from project root
# ---------------------------------------------------------------------------
_ENV_PATH = Path(__file__).resolve().parent / ".env"
load_dotenv(_ENV_PATH)


def _get_optional(key: str, default: str = "") -> str:
    """
    Retrieve an optional environment variable with a default.

    Args:
        key: The environment variable name.
        default: Fallback value if not set.

    Returns:
        The value string or default.
    """
    return os.getenv(key, default).strip() or default


def _get_int(key: str, default: int = 0) -> int:
    """
    Retrieve an environment variable as an integer.

    Args:
        key: The environment variable name.
        default: Fallback if not set or not a valid int.

    Returns:
        The integer value.
    """
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(key: str, default: float = 0.0) -> float:
    """
    Retrieve an environment variable as a float.

    Args:
        key: The environment variable name.
        default: Fallback if not set or not a valid float.

    Returns:
        The float value.
    """
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ===========================================================================
# Section 1 — Google OAuth client
# ===========================================================================

GOOGLE_CLIENT_ID: str = _get_optional("GOOGLE_CLIENT_ID")
# Optional: browser-style clients have no secret, installed-app clients do
GOOGLE_CLIENT_SECRET: str = _get_optional("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI: str = _get_optional(
    "GOOGLE_REDIRECT_URI", "http://localhost:8080/auth/callback"
)

_DEFAULT_SCOPES = " ".join(
    [
        "https://www.googleapis.com/auth/userinfo.profile",
        "https://www.googleapis.com/auth/userinfo.email",
        "https://www.googleapis.com/auth/spreadsheets",
        "https://www.googleapis.com/auth/gmail.send",
        "https://www.googleapis.com/auth/gmail.compose",
    ]
)
GOOGLE_SCOPES: list[str] = _get_optional("GOOGLE_SCOPES", _DEFAULT_SCOPES).split()

GOOGLE_AUTH_URL: str = _get_optional(
    "GOOGLE_AUTH_URL", "https://accounts.google.com/o/oauth2/v2/auth"
)
GOOGLE_TOKEN_URL: str = _get_optional(
    "GOOGLE_TOKEN_URL", "https://oauth2.googleapis.com/token"
)
GOOGLE_USERINFO_URL: str = _get_optional(
    "GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v2/userinfo"
)
GOOGLE_REVOKE_URL: str = _get_optional(
    "GOOGLE_REVOKE_URL", "https://oauth2.googleapis.com/revoke"
)

# ===========================================================================
# Section 2 — Sign-in flow
# ===========================================================================

APP_ROOT_URL: str = _get_optional("APP_ROOT_URL", "http://localhost:8080/")
POPUP_GRACE_SECONDS: float = _get_float("POPUP_GRACE_SECONDS", 0.5)
SURFACE_POLL_SECONDS: float = _get_float("SURFACE_POLL_SECONDS", 1.0)
CALLBACK_TIMEOUT_SECONDS: int = _get_int("CALLBACK_TIMEOUT_SECONDS", 300)
# 0 means no client-side timeout; the transport decides
HTTP_TIMEOUT_SECONDS: float = _get_float("HTTP_TIMEOUT_SECONDS", 0.0)

# ===========================================================================
# Section 3 — General Config
# ===========================================================================

LOG_LEVEL: str = _get_optional("LOG_LEVEL", "INFO")

# ===========================================================================
# Project paths (derived, overridable from .env)
# ===========================================================================

PROJECT_ROOT: Path = Path(__file__).resolve().parent
LOGS_DIR: Path = Path(_get_optional("JOBTRACK_LOGS_DIR", str(PROJECT_ROOT / "logs")))
TOKEN_STORE_PATH: Path = Path(
    _get_optional(
        "TOKEN_STORE_PATH", str(PROJECT_ROOT / ".jobtrack" / "auth" / "tokens.json")
    )
)

# Ensure logs directory exists
LOGS_DIR.mkdir(parents=True, exist_ok=True)


# ===========================================================================
# Validation helpers
# ===========================================================================

def http_timeout() -> float | None:
    """Return the HTTP timeout for provider calls, or None for no timeout."""
    return HTTP_TIMEOUT_SECONDS if HTTP_TIMEOUT_SECONDS > 0 else None


def validate_oauth_config() -> None:
    """
    Validate that the Google OAuth client is configured.
    Call this before starting a sign-in — not at import time,
    so status and sign-out keep working without credentials.

    Raises:
        SystemExit: If required values are missing.

    Example:
        validate_oauth_config()
    """
    checks: list[tuple[str, str]] = [
        (GOOGLE_CLIENT_ID, "GOOGLE_CLIENT_ID"),
        (GOOGLE_REDIRECT_URI, "GOOGLE_REDIRECT_URI"),
        (APP_ROOT_URL, "APP_ROOT_URL"),
    ]
    for value, name in checks:
        if not value:
            print(
                f"[JobTrack Config Error] Sign-in requires '{name}' but it is missing.\n"
                f"  → Add it to your .env file. See .env.example for reference.",
                file=sys.stderr,
            )
            raise SystemExit(1)

    if not GOOGLE_SCOPES:
        print(
            "[JobTrack Config Error] 'GOOGLE_SCOPES' must list at least one scope.",
            file=sys.stderr,
        )
        raise SystemExit(1)

