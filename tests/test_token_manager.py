import asyncio
import threading
from datetime import timedelta

import pytest

from auth.errors import AuthError, AuthErrorReason
from auth.models import Credential
from auth.token_manager import TokenManager
from fakes import FIXED_NOW, FakeOAuthClient


@pytest.fixture()
def tokens(store, client):
    return TokenManager(store, client, clock=lambda: FIXED_NOW)


def _expired(refresh="refresh-1"):
    return Credential("access-1", refresh, FIXED_NOW - timedelta(seconds=1))


@pytest.mark.asyncio
async def test_valid_token_is_returned_without_network(tokens, store, client):
    store.save(Credential("access-1", "refresh-1", FIXED_NOW + timedelta(minutes=5)))

    assert await tokens.get_valid_access_token() == "access-1"
    assert client.calls == []
    assert tokens.is_expired() is False


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_once(tokens, store, client):
    store.save(_expired())

    token = await tokens.get_valid_access_token()

    assert token == "access-2"
    assert client.calls == [("refresh", "refresh-1")]
    assert store.access_token == "access-2"
    assert store.refresh_token == "refresh-1"
    assert store.credential.expires_at == FIXED_NOW + timedelta(seconds=3600)


@pytest.mark.asyncio
async def test_rotated_refresh_token_is_stored(tokens, store, client):
    client.refresh_response = {"access_token": "access-2", "refresh_token": "refresh-2", "expires_in": 60}
    store.save(_expired())

    await tokens.get_valid_access_token()

    assert store.refresh_token == "refresh-2"


@pytest.mark.asyncio
async def test_no_credential(tokens, client):
    with pytest.raises(AuthError) as exc_info:
        await tokens.get_valid_access_token()

    assert exc_info.value.reason is AuthErrorReason.NO_CREDENTIAL
    assert client.calls == []


@pytest.mark.asyncio
async def test_expired_without_refresh_token_clears_credential(tokens, store, storage, client):
    store.save(_expired(refresh=None))

    with pytest.raises(AuthError) as exc_info:
        await tokens.get_valid_access_token()

    assert exc_info.value.reason is AuthErrorReason.REFRESH_FAILED
    assert client.calls == []
    assert storage.snapshot() == {}
    assert store.credential is None


@pytest.mark.asyncio
async def test_provider_rejection_clears_credential(tokens, store, storage, client):
    client.refresh_error = AuthError(AuthErrorReason.REFRESH_FAILED, detail="invalid_grant")
    store.save(_expired())

    with pytest.raises(AuthError) as exc_info:
        await tokens.get_valid_access_token()

    assert exc_info.value.reason is AuthErrorReason.REFRESH_FAILED
    assert storage.snapshot() == {}
    assert store.credential is None


@pytest.mark.asyncio
async def test_malformed_refresh_response_clears_credential(tokens, store, storage, client):
    client.refresh_response = {"token_type": "Bearer"}
    store.save(_expired())

    with pytest.raises(AuthError) as exc_info:
        await tokens.get_valid_access_token()

    assert exc_info.value.reason is AuthErrorReason.REFRESH_FAILED
    assert store.credential is None


class CountingRefreshClient(FakeOAuthClient):
    """Issues a distinct access token on every refresh."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._issued = 0

    def refresh_access_token(self, refresh_token):
        with self._lock:
            self._issued += 1
            number = self._issued
        self.calls.append(("refresh", refresh_token))
        return {"access_token": f"access-2-{number}", "expires_in": 3600}


@pytest.mark.asyncio
async def test_concurrent_callers_refresh_independently(store):
    client = CountingRefreshClient()
    tokens = TokenManager(store, client, clock=lambda: FIXED_NOW)
    store.save(_expired())

    first, second = await asyncio.gather(
        tokens.get_valid_access_token(), tokens.get_valid_access_token()
    )

    assert client.count("refresh") == 2
    assert {first, second} == {"access-2-1", "access-2-2"}
    assert store.access_token in {first, second}
    assert store.refresh_token == "refresh-1"
    assert store.is_valid(FIXED_NOW) is True
