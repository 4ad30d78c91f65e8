"""
google_oauth.py

Implements the Google side of the OAuth2 Authorization Code Flow.
Handles authorization URL generation, code exchange, token refresh,
identity lookup and token revocation over requests.
Part of JobTrack — Personal Job Application Tracker.

Auth Flow: OAuth2 Authorization Code Flow (offline access, consent every time)
Provider: Google
Auth URL: https://accounts.google.com/o/oauth2/v2/auth
Token URL: https://oauth2.googleapis.com/token
Identity URL: https://www.googleapis.com/oauth2/v2/userinfo
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import requests

import config
from auth.errors import AuthError, AuthErrorReason
from auth.models import Identity

_log = logging.getLogger("jobtrack.auth.google")


class GoogleOAuthClient:
    """
    HTTP client for Google's authorization, token and identity endpoints.

    All network failures, non-2xx responses and undecodable bodies are
    raised as AuthError with the reason the caller asks for.

    Args:
        client_id: OAuth client identifier.
        redirect_uri: Registered callback target.
        scopes: Requested scope set.
        client_secret: Sent with token requests when non-empty.
        session: requests.Session to use (a new one by default).
        timeout: Per-request timeout in seconds, or None for none.

    Example:
        client = GoogleOAuthClient("123.apps.googleusercontent.com",
                                   "http://localhost:8080/auth/callback",
                                   ["openid", "email"])
        url = client.get_authorization_url()
    """

    def __init__(
        self,
        client_id: str,
        redirect_uri: str,
        scopes: list[str],
        client_secret: str = "",
        auth_url: str = config.GOOGLE_AUTH_URL,
        token_url: str = config.GOOGLE_TOKEN_URL,
        userinfo_url: str = config.GOOGLE_USERINFO_URL,
        revoke_url: str = config.GOOGLE_REVOKE_URL,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes)
        self.client_secret = client_secret
        self.auth_url = auth_url
        self.token_url = token_url
        self.userinfo_url = userinfo_url
        self.revoke_url = revoke_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def get_authorization_url(self) -> str:
        """
        Generate the Google OAuth2 authorization URL.

        Returns:
            The full URL to open in the authorization surface.
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{self.auth_url}?{urlencode(params)}"

    def exchange_code_for_token(self, code: str) -> dict[str, Any]:
        """
        Exchange an authorization code for access and refresh tokens.

        Args:
            code: The authorization code relayed from the callback.

        Returns:
            The token response: access_token, refresh_token?, expires_in, token_type, scope.

        Raises:
            AuthError: EXCHANGE_FAILED if the call fails.
        """
        form = {
            "client_id": self.client_id,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        _log.info("Exchanging authorization code for tokens")
        return self._post_token(form, AuthErrorReason.EXCHANGE_FAILED, "token exchange")

    def refresh_access_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh an expired access token using the refresh token.

        Args:
            refresh_token: The refresh token from a previous exchange.

        Returns:
            The token response; refresh_token is usually absent.

        Raises:
            AuthError: REFRESH_FAILED if the provider rejects the renewal.
        """
        form = {
            "client_id": self.client_id,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        _log.info("Refreshing access token")
        return self._post_token(form, AuthErrorReason.REFRESH_FAILED, "token refresh")

    def fetch_identity(self, access_token: str) -> Identity:
        """
        Fetch the signed-in user's profile.

        Args:
            access_token: A valid bearer token.

        Returns:
            The Identity mapped from {id, email, name, picture?}.

        Raises:
            AuthError: EXCHANGE_FAILED if the call fails.
        """
        try:
            response = self._session.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            _log.error("Identity request failed: %s", exc)
            raise AuthError(AuthErrorReason.EXCHANGE_FAILED, message="Failed to get user info") from exc

        if not response.ok:
            _log.error("Identity request failed (%s): %s", response.status_code, response.text)
            raise AuthError(AuthErrorReason.EXCHANGE_FAILED, message="Failed to get user info")

        payload = self._decode(response, AuthErrorReason.EXCHANGE_FAILED, "identity")
        return Identity.from_userinfo(payload)

    def revoke_token(self, token: str) -> bool:
        """
        Revoke a Google OAuth2 token.

        Args:
            token: The access or refresh token to revoke.

        Returns:
            True if revocation was successful, False otherwise.
        """
        try:
            response = self._session.post(
                self.revoke_url,
                data={"token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            _log.warning("Token revocation failed: %s", exc)
            return False

        if not response.ok:
            _log.warning("Token revocation rejected (%s): %s", response.status_code, response.text)
            return False

        _log.info("Token revoked")
        return True

    def _post_token(
        self, form: dict[str, str], failure: AuthErrorReason, label: str
    ) -> dict[str, Any]:
        """POST a form-encoded grant to the token endpoint."""
        if self.client_secret:
            form["client_secret"] = self.client_secret

        try:
            response = self._session.post(
                self.token_url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            _log.error("Google %s request failed: %s", label, exc)
            raise AuthError(failure, message=f"Google {label} request failed") from exc

        if not response.ok:
            _log.error("Google %s failed (%s): %s", label, response.status_code, response.text)
            raise AuthError(failure, detail=_provider_error(response))

        return self._decode(response, failure, label)

    @staticmethod
    def _decode(response: requests.Response, failure: AuthErrorReason, label: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            _log.error("Invalid Google %s response: %s", label, exc)
            raise AuthError(failure, message=f"Invalid Google {label} response") from exc

        if not isinstance(payload, dict):
            _log.error("Google %s response had invalid shape", label)
            raise AuthError(failure, message=f"Invalid Google {label} response")
        return payload


def _provider_error(response: requests.Response) -> str | None:
    """Extract the OAuth error code from an error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error_code = body.get("error")
        if isinstance(error_code, str) and error_code:
            return error_code
    return None
