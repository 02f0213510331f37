import threading
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from cuub_backend.services.db_client import init_schema
from cuub_backend.services.login_provider import LoginProvider, LoginResult
from cuub_backend.services.resilient_caller import ResilientCaller
from cuub_backend.services.station_service import StationCommandDispatcher
from cuub_backend.services.token_refresher import SingleFlightRefresher
from cuub_backend.services.token_store import TokenStore


class FakeLoginProvider(LoginProvider):
    """Hands out scripted tokens; None in the script means a failed login."""

    def __init__(self, tokens=("tok-fresh",), gate: threading.Event = None):
        self.tokens = list(tokens)
        self.gate = gate
        self.calls = 0
        self._lock = threading.Lock()

    def perform_login(self) -> LoginResult:
        with self._lock:
            self.calls += 1
            index = min(self.calls, len(self.tokens)) - 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        token = self.tokens[index]
        if token is None:
            return LoginResult(success=False)
        return LoginResult(success=True, token=token)


def make_response(status_code=200, json_body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.reason = reason
    if isinstance(json_body, Exception):
        response.json.side_effect = json_body
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def token_store(engine):
    return TokenStore(engine)


@pytest.fixture
def login_provider():
    return FakeLoginProvider()


@pytest.fixture
def refresher(login_provider, token_store):
    return SingleFlightRefresher(login_provider, token_store, grace_seconds=0, wait_timeout=5)


@pytest.fixture
def caller(token_store, refresher):
    return ResilientCaller(token_store, refresher)


@pytest.fixture
def dispatcher(caller):
    return StationCommandDispatcher(caller)
