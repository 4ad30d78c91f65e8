from datetime import datetime, timezone

from auth.errors import AuthError
from auth.models import Identity
from auth.surface import AuthSurface, Navigator, SurfaceOpener

ORIGIN = "http://localhost:8080"
AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth?client_id=test-client"
FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

USERINFO = {
    "id": "109876543210",
    "email": "ada@example.com",
    "name": "Ada Lovelace",
    "picture": "https://lh3.googleusercontent.com/a/ada",
}


class FakeOAuthClient:
    """Stands in for GoogleOAuthClient; records every call."""

    def __init__(
        self,
        token_response: dict | None = None,
        refresh_response: dict | None = None,
        userinfo: dict | None = None,
        exchange_error: AuthError | None = None,
        refresh_error: AuthError | None = None,
    ):
        self.token_response = token_response or {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
            "token_type": "Bearer",
            "scope": "email profile",
        }
        self.refresh_response = refresh_response or {
            "access_token": "access-2",
            "expires_in": 3600,
            "token_type": "Bearer",
            "scope": "email profile",
        }
        self.userinfo = userinfo or dict(USERINFO)
        self.exchange_error = exchange_error
        self.refresh_error = refresh_error
        self.calls: list[tuple[str, str]] = []

    def get_authorization_url(self) -> str:
        return AUTH_URL

    def exchange_code_for_token(self, code: str) -> dict:
        self.calls.append(("exchange", code))
        if self.exchange_error:
            raise self.exchange_error
        return dict(self.token_response)

    def refresh_access_token(self, refresh_token: str) -> dict:
        self.calls.append(("refresh", refresh_token))
        if self.refresh_error:
            raise self.refresh_error
        return dict(self.refresh_response)

    def fetch_identity(self, access_token: str) -> Identity:
        self.calls.append(("identity", access_token))
        return Identity.from_userinfo(self.userinfo)

    def revoke_token(self, token: str) -> bool:
        self.calls.append(("revoke", token))
        return True

    def count(self, kind: str) -> int:
        return sum(1 for name, _ in self.calls if name == kind)


class FakeSurface(AuthSurface):
    def __init__(self, closed: bool = False):
        self._closed = closed
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def user_closes(self) -> None:
        self._closed = True

    def close(self) -> None:
        self.close_calls += 1
        self._closed = True


class FakeOpener(SurfaceOpener):
    def __init__(self, surface: FakeSurface | None, on_open=None):
        self.surface = surface
        self.on_open = on_open
        self.opened: list[str] = []

    def open(self, url: str):
        self.opened.append(url)
        if self.on_open is not None:
            self.on_open(url)
        return self.surface


class FakeNavigator(Navigator):
    def __init__(self):
        self.visited: list[str] = []

    def navigate(self, url: str) -> None:
        self.visited.append(url)


