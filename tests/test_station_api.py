from unittest.mock import patch

import pytest

pytest.importorskip("httpx")
from fastapi.testclient import TestClient

from cuub_backend.main import app
from cuub_backend.models.relink_models import CallOutcome
from cuub_backend.services import relink_client
from cuub_backend.services.station_service import get_station_dispatcher
from cuub_backend.services.token_refresher import get_token_refresher


@pytest.fixture
def client(dispatcher, refresher):
    app.dependency_overrides[get_station_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_token_refresher] = lambda: refresher
    yield TestClient(app)
    app.dependency_overrides.clear()


def _popped(slot):
    return CallOutcome.success({"borrowstatus": True, "lockid": slot, "batteryid": f"BAT{slot}"})


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "cuub-station-backend"}


def test_get_slots_returns_envelope(client, token_store) -> None:
    token_store.replace("tok-A")
    body = {"content": [{"positionInfo": {"returnNum": 2, "borrowNum": 4}}]}

    with patch.object(relink_client, "fetch_cabinet", return_value=CallOutcome.success(body)):
        response = client.get("/stations/CAB1/slots")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"openSlots": 2, "filledSlots": 4}}


def test_get_slots_vendor_error_is_502(client, token_store) -> None:
    token_store.replace("tok-A")
    failure = CallOutcome.other_failure("HTTP 500", status_code=500)

    with patch.object(relink_client, "fetch_cabinet", return_value=failure):
        response = client.get("/stations/CAB1/slots")

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert response.json()["error"]


@pytest.mark.parametrize("slot", ["0", "7", "abc", "1.5"])
def test_pop_invalid_slot_is_400(client, slot) -> None:
    with patch.object(relink_client, "send_pop_command") as send:
        response = client.post(f"/pop/CAB1/{slot}")

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Invalid slot number. Must be between 1 and 6",
    }
    send.assert_not_called()


def test_pop_single_slot(client, token_store) -> None:
    token_store.replace("tok-A")

    with patch.object(relink_client, "send_pop_command", return_value=_popped(3)):
        response = client.post("/pop/CAB1/3")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": [{"slot": 3, "manufacture_id": "BAT3"}],
        "count": 1,
    }


def test_pop_single_slot_declined_is_500(client, token_store) -> None:
    token_store.replace("tok-A")
    declined = CallOutcome.success({"borrowstatus": False})

    with patch.object(relink_client, "send_pop_command", return_value=declined):
        response = client.post("/pop/CAB1/2")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to send pop command to Relink API"}


def test_pop_without_obtainable_token_is_503(client, login_provider) -> None:
    login_provider.tokens = [None]

    with patch.object(relink_client, "send_pop_command") as send:
        single = client.post("/pop/CAB1/1")
        batch = client.post("/pop/CAB1/all")

    assert single.status_code == 503
    assert batch.status_code == 503
    assert batch.json()["success"] is False
    send.assert_not_called()


def test_pop_all_lists_popped_slots(client, token_store) -> None:
    token_store.replace("tok-A")

    def send(station_id, slot, token):
        if slot in (2, 5):
            return _popped(slot)
        return CallOutcome.success({"borrowstatus": False})

    with patch.object(relink_client, "send_pop_command", side_effect=send):
        response = client.post("/pop/CAB1/all")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": [
            {"slot": 2, "manufacture_id": "BAT2"},
            {"slot": 5, "manufacture_id": "BAT5"},
        ],
        "count": 2,
    }


def test_token_endpoint_refreshes_and_stores(client, token_store) -> None:
    response = client.get("/token")

    assert response.status_code == 200
    assert response.json() == {"success": True, "token": "tok-fresh"}
    assert token_store.read() == "tok-fresh"


def test_token_endpoint_failure_is_503(client, login_provider) -> None:
    login_provider.tokens = [None]

    response = client.get("/token")

    assert response.status_code == 503
    assert response.json() == {"success": False, "error": "Failed to obtain token"}
