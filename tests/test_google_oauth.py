from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from auth.errors import AuthError, AuthErrorReason
from auth.google_oauth import GoogleOAuthClient
from fakes import USERINFO

REDIRECT_URI = "http://localhost:8080/auth/callback"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else str(payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {})
        self.error = error
        self.posts = []
        self.gets = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": dict(data), "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response

    def get(self, url, headers=None, timeout=None):
        self.gets.append({"url": url, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def _client(session, client_secret=""):
    return GoogleOAuthClient(
        client_id="test-client",
        redirect_uri=REDIRECT_URI,
        scopes=["openid", "email", "profile"],
        client_secret=client_secret,
        session=session,
        timeout=5.0,
    )


def test_authorization_url_requests_offline_consent():
    url = _client(FakeSession()).get_authorization_url()

    parts = urlsplit(url)
    params = {k: v[0] for k, v in parse_qs(parts.query).items()}
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://accounts.google.com/o/oauth2/v2/auth"
    assert params == {
        "client_id": "test-client",
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "scope": "openid email profile",
        "access_type": "offline",
        "prompt": "consent",
    }


def test_exchange_posts_authorization_code_grant():
    session = FakeSession(FakeResponse(200, {"access_token": "a", "expires_in": 3600}))

    payload = _client(session).exchange_code_for_token("4/0Acode")

    assert payload["access_token"] == "a"
    sent = session.posts[0]
    assert sent["url"] == "https://oauth2.googleapis.com/token"
    assert sent["data"] == {
        "client_id": "test-client",
        "code": "4/0Acode",
        "grant_type": "authorization_code",
        "redirect_uri": REDIRECT_URI,
    }
    assert sent["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert sent["timeout"] == 5.0


def test_refresh_posts_refresh_token_grant():
    session = FakeSession(FakeResponse(200, {"access_token": "b", "expires_in": 3600}))

    _client(session).refresh_access_token("1//refresh")

    assert session.posts[0]["data"] == {
        "client_id": "test-client",
        "refresh_token": "1//refresh",
        "grant_type": "refresh_token",
    }


def test_client_secret_is_sent_when_configured():
    session = FakeSession(FakeResponse(200, {"access_token": "a", "expires_in": 1}))

    _client(session, client_secret="shh").exchange_code_for_token("code")

    assert session.posts[0]["data"]["client_secret"] == "shh"


def test_exchange_rejection_carries_provider_error():
    session = FakeSession(FakeResponse(400, {"error": "invalid_grant"}))

    with pytest.raises(AuthError) as exc_info:
        _client(session).exchange_code_for_token("stale")

    assert exc_info.value.reason is AuthErrorReason.EXCHANGE_FAILED
    assert exc_info.value.detail == "invalid_grant"


def test_refresh_rejection_is_refresh_failed():
    session = FakeSession(FakeResponse(401, {"error": "invalid_grant"}))

    with pytest.raises(AuthError) as exc_info:
        _client(session).refresh_access_token("revoked")

    assert exc_info.value.reason is AuthErrorReason.REFRESH_FAILED


def test_network_failure_is_exchange_failed():
    session = FakeSession(error=requests.ConnectionError("connection refused"))

    with pytest.raises(AuthError) as exc_info:
        _client(session).exchange_code_for_token("code")

    assert exc_info.value.reason is AuthErrorReason.EXCHANGE_FAILED


def test_undecodable_body_is_exchange_failed():
    session = FakeSession(FakeResponse(200, None, text="<html>oops</html>"))

    with pytest.raises(AuthError) as exc_info:
        _client(session).exchange_code_for_token("code")

    assert exc_info.value.reason is AuthErrorReason.EXCHANGE_FAILED


def test_non_object_body_is_rejected():
    session = FakeSession(FakeResponse(200, ["not", "an", "object"]))

    with pytest.raises(AuthError):
        _client(session).refresh_access_token("r")


def test_fetch_identity_maps_fields_and_sends_bearer():
    session = FakeSession(FakeResponse(200, dict(USERINFO)))

    identity = _client(session).fetch_identity("ya29.token")

    assert identity.id == USERINFO["id"]
    assert identity.email == USERINFO["email"]
    assert identity.display_name == USERINFO["name"]
    assert identity.avatar_url == USERINFO["picture"]
    assert session.gets[0]["url"] == "https://www.googleapis.com/oauth2/v2/userinfo"
    assert session.gets[0]["headers"] == {"Authorization": "Bearer ya29.token"}


def test_fetch_identity_without_picture():
    payload = {k: v for k, v in USERINFO.items() if k != "picture"}
    session = FakeSession(FakeResponse(200, payload))

    assert _client(session).fetch_identity("t").avatar_url is None


def test_fetch_identity_failure():
    session = FakeSession(FakeResponse(401, {"error": "invalid_token"}))

    with pytest.raises(AuthError) as exc_info:
        _client(session).fetch_identity("expired")

    assert exc_info.value.reason is AuthErrorReason.EXCHANGE_FAILED
    assert str(exc_info.value) == "Failed to get user info"


def test_revoke_reports_outcome():
    assert _client(FakeSession(FakeResponse(200, {}))).revoke_token("t") is True
    assert _client(FakeSession(FakeResponse(400, {"error": "invalid_token"}))).revoke_token("t") is False
    assert _client(FakeSession(error=requests.Timeout("slow"))).revoke_token("t") is False
