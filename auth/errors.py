"""
errors.py

Error taxonomy for sign-in and token lifecycle failures.
Every failure reaches the caller as an AuthError carrying a reason,
plus the provider's detail string where one exists.
Part of JobTrack — Personal Job Application Tracker.
"""

from __future__ import annotations

from enum import Enum


class AuthErrorReason(str, Enum):
    """Why an authentication operation failed."""

    CANCELLED = "cancelled"
    DENIED = "denied"
    EXCHANGE_FAILED = "exchange_failed"
    NO_CREDENTIAL = "no_credential"
    REFRESH_FAILED = "refresh_failed"


_DEFAULT_MESSAGES: dict[AuthErrorReason, str] = {
    AuthErrorReason.CANCELLED: "Authentication window was closed before sign-in completed",
    AuthErrorReason.DENIED: "Authorization was denied by the provider",
    AuthErrorReason.EXCHANGE_FAILED: "Failed to exchange credentials with the provider",
    AuthErrorReason.NO_CREDENTIAL: "No access token available",
    AuthErrorReason.REFRESH_FAILED: "Access token expired and could not be refreshed",
}


class AuthError(Exception):
    """
    Raised for every sign-in and token failure.

    Args:
        reason: The failure kind.
        detail: Provider-supplied error string (e.g. "access_denied"), kept verbatim.
        message: Optional human-readable override for str(exc).

    Example:
        raise AuthError(AuthErrorReason.DENIED, detail="access_denied")
    """

    def __init__(
        self,
        reason: AuthErrorReason,
        detail: str | None = None,
        message: str | None = None,
    ) -> None:
        self.reason = reason
        self.detail = detail
        text = message or _DEFAULT_MESSAGES[reason]
        if detail and not message:
            text = f"{text}: {detail}"
        super().__init__(text)

    def __repr__(self) -> str:
        return f"AuthError(reason={self.reason.value!r}, detail={self.detail!r})"


def describe_auth_error(exc: BaseException) -> str:
    """
    Map an error to the short banner shown to the user.

    Args:
        exc: Any exception raised by a sign-in or token call.

    Returns:
        A one-line message suitable for a banner.
    """
    if not isinstance(exc, AuthError):
        return f"Sign-in failed: {exc}"

    detail = exc.detail or ""
    if exc.reason is AuthErrorReason.CANCELLED:
        return "Sign-in was cancelled. Please try again and complete the sign-in process."
    if "redirect_uri_mismatch" in detail:
        return "Configuration error. Please contact support."
    if exc.reason is AuthErrorReason.DENIED:
        if "access_denied" in detail:
            return "Access was denied. Please grant the requested permissions to continue."
        return f"Sign-in failed: {detail or 'authorization was refused'}"
    if exc.reason is AuthErrorReason.NO_CREDENTIAL:
        return "You are not signed in. Please sign in with Google."
    if exc.reason is AuthErrorReason.REFRESH_FAILED:
        return "Your session has expired. Please sign in again."
    return f"Sign-in failed: {exc}"
