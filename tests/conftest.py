import os
import tempfile

# Keep test runs from writing into the project's logs/ directory.
os.environ.setdefault("JOBTRACK_LOGS_DIR", tempfile.mkdtemp(prefix="jobtrack-logs-"))

import pytest  # noqa: E402

from auth.flow import AuthorizationFlow  # noqa: E402
from auth.relay import RelayChannel  # noqa: E402
from auth.storage import MemoryStorage  # noqa: E402
from auth.surface import SurfaceOpener  # noqa: E402
from auth.token_store import TokenStore  # noqa: E402
from fakes import FIXED_NOW, ORIGIN, FakeNavigator, FakeOAuthClient  # noqa: E402


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def store(storage: MemoryStorage) -> TokenStore:
    return TokenStore(storage)


@pytest.fixture()
def client() -> FakeOAuthClient:
    return FakeOAuthClient()


@pytest.fixture()
def channel() -> RelayChannel:
    return RelayChannel(ORIGIN)


@pytest.fixture()
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture()
def make_flow(client, store, channel, navigator):
    def _make(opener: SurfaceOpener) -> AuthorizationFlow:
        return AuthorizationFlow(
            client,
            store,
            channel,
            opener,
            navigator,
            popup_grace_seconds=0.01,
            poll_interval_seconds=0.01,
            clock=lambda: FIXED_NOW,
        )

    return _make
