import requests
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from conftest import FakeLoginProvider

from cuub_backend.models.relink_models import TOKEN_UNAVAILABLE, CallOutcome, CallStatus
from cuub_backend.services.resilient_caller import ResilientCaller
from cuub_backend.services.token_refresher import SingleFlightRefresher
from cuub_backend.services.token_store import TokenStore


class ScriptedOperation:
    """Plays back outcomes in order and records the token of every call."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.tokens = []

    def __call__(self, token):
        self.tokens.append(token)
        return self.outcomes[min(len(self.tokens), len(self.outcomes)) - 1]


OK = CallOutcome.success({"ok": True})
UNAUTHORIZED = CallOutcome.auth_failure(401)
SERVER_ERROR = CallOutcome.other_failure("HTTP 500", status_code=500)


def test_missing_token_is_minted_before_first_call(caller, token_store, login_provider) -> None:
    login_provider.tokens = ["tok-A"]
    op = ScriptedOperation(OK)

    outcome = caller.call_with_policy(op)

    assert outcome.is_success
    assert op.tokens == ["tok-A"]
    assert login_provider.calls == 1
    assert token_store.read() == "tok-A"


def test_stale_token_is_refreshed_and_retried_once(caller, token_store, login_provider) -> None:
    token_store.replace("tok-stale")
    op = ScriptedOperation(UNAUTHORIZED, OK)

    outcome = caller.call_with_policy(op)

    assert outcome == OK
    assert op.tokens == ["tok-stale", "tok-fresh"]
    assert login_provider.calls == 1
    assert token_store.read() == "tok-fresh"


def test_other_failure_is_not_retried(caller, token_store, login_provider) -> None:
    token_store.replace("tok-A")
    op = ScriptedOperation(SERVER_ERROR, OK)

    outcome = caller.call_with_policy(op)

    assert outcome == SERVER_ERROR
    assert op.tokens == ["tok-A"]
    assert login_provider.calls == 0


def test_second_auth_failure_is_final(caller, token_store, login_provider) -> None:
    token_store.replace("tok-stale")
    op = ScriptedOperation(UNAUTHORIZED, UNAUTHORIZED, OK)

    outcome = caller.call_with_policy(op)

    assert outcome.kind == CallStatus.AUTH_FAILURE
    assert len(op.tokens) == 2
    assert login_provider.calls == 1


def test_retry_outcome_is_returned_whatever_it_is(caller, token_store) -> None:
    token_store.replace("tok-stale")
    op = ScriptedOperation(UNAUTHORIZED, SERVER_ERROR)

    assert caller.call_with_policy(op) == SERVER_ERROR
    assert len(op.tokens) == 2


def test_failed_refresh_returns_original_auth_failure(caller, token_store, login_provider) -> None:
    token_store.replace("tok-stale")
    login_provider.tokens = [None]
    op = ScriptedOperation(UNAUTHORIZED, OK)

    outcome = caller.call_with_policy(op)

    assert outcome == UNAUTHORIZED
    assert op.tokens == ["tok-stale"]
    assert login_provider.calls == 1


def test_no_token_obtainable_is_token_unavailable(caller, login_provider) -> None:
    login_provider.tokens = [None]
    op = ScriptedOperation(OK)

    outcome = caller.call_with_policy(op)

    assert outcome.kind == CallStatus.OTHER_FAILURE
    assert outcome.reason == TOKEN_UNAVAILABLE
    assert outcome.is_token_unavailable
    assert op.tokens == []


def test_freshly_minted_token_rejected_does_not_login_twice(caller, login_provider) -> None:
    login_provider.tokens = ["tok-A", "tok-B"]
    op = ScriptedOperation(UNAUTHORIZED, OK)

    outcome = caller.call_with_policy(op)

    assert outcome == UNAUTHORIZED
    assert op.tokens == ["tok-A"]
    assert login_provider.calls == 1


def test_at_most_two_calls_and_one_login_for_any_script(engine, token_store) -> None:
    choices = [OK, UNAUTHORIZED, SERVER_ERROR]
    for first in choices:
        for second in choices:
            for stored in ("tok-stale", None):
                with engine.begin() as conn:
                    conn.execute(text("DELETE FROM token"))
                if stored:
                    token_store.replace(stored)
                login = FakeLoginProvider(tokens=["tok-fresh"])
                refresher = SingleFlightRefresher(login, token_store, grace_seconds=0, wait_timeout=5)
                op = ScriptedOperation(first, second)

                ResilientCaller(token_store, refresher).call_with_policy(op)

                assert len(op.tokens) <= 2
                assert login.calls <= 1


def test_call_once_without_token_never_calls_op(caller) -> None:
    op = ScriptedOperation(OK)

    outcome = caller.call_once(op, None)

    assert outcome.is_token_unavailable
    assert op.tokens == []


def test_call_once_maps_raised_request_errors(caller) -> None:
    def op(token):
        raise requests.ConnectionError("reset by peer")

    outcome = caller.call_once(op, "tok-A")

    assert outcome.kind == CallStatus.OTHER_FAILURE


def test_broken_store_is_treated_as_missing_token() -> None:
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    store = TokenStore(engine)
    login = FakeLoginProvider(tokens=["tok-A"])
    refresher = SingleFlightRefresher(login, store, grace_seconds=0, wait_timeout=5)
    op = ScriptedOperation(OK)

    outcome = ResilientCaller(store, refresher).call_with_policy(op)

    assert outcome.is_success
    assert op.tokens == ["tok-A"]
    assert login.calls == 1
