# cuub_backend/services/relink_client.py
import logging
import requests
from cuub_backend.config import settings
from cuub_backend.models.relink_models import CallOutcome

logger = logging.getLogger(__name__)

POP_COMMAND_SIGN = "SendCompulsoryBorrowDevice"
POP_RL_SEQ = 1


def _relink_headers(token: str) -> dict:
    return {
        "Authorization": f"Bearer {token}",
        "Referer": settings.RELINK_REFERER,
        "oid": settings.RELINK_OID,
        "Content-Type": "application/json",
    }


def classify_response(r: requests.Response) -> CallOutcome:
    """
    把 Relink 回應分類：
    - 2xx + JSON → SUCCESS
    - 401 / 403 → AUTH_FAILURE（token 失效，需要 refresh）
    - 其他 → OTHER_FAILURE（不要 refresh，避免把別的錯誤當成 token 問題）
    """
    if r.status_code in (401, 403):
        logger.error(f"Relink API unauthorized error ({r.status_code}): Token may be invalid")
        return CallOutcome.auth_failure(r.status_code)

    if not r.ok:
        logger.error(f"Relink API error: {r.status_code} {r.reason}")
        return CallOutcome.other_failure(f"HTTP {r.status_code}", status_code=r.status_code)

    try:
        data = r.json()
    except ValueError:
        logger.error("Relink API returned a non-JSON body")
        return CallOutcome.other_failure("invalid JSON body", status_code=r.status_code)

    return CallOutcome.success(data, status_code=r.status_code)


def fetch_cabinet(station_id: str, token: str) -> CallOutcome:
    url = f"{settings.RELINK_API_BASE}/cabinet"

    try:
        r = requests.get(
            url,
            params={"cabinetId": station_id},
            headers=_relink_headers(token),
            timeout=settings.VENDOR_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error(f"Error calling Relink cabinet API for {station_id}: {e}")
        return CallOutcome.other_failure(f"network error: {e}")

    return classify_response(r)


def send_pop_command(station_id: str, slot: int, token: str) -> CallOutcome:
    url = f"{settings.RELINK_API_BASE}/command/sendCommandBySign"
    payload = {
        "cabinetId": station_id,
        "rlSeq": POP_RL_SEQ,
        "rlSlot": slot,
        "commandSign": POP_COMMAND_SIGN,
    }

    try:
        r = requests.post(
            url,
            json=payload,
            headers=_relink_headers(token),
            timeout=settings.VENDOR_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error(f"Error sending pop command (station {station_id}, slot {slot}): {e}")
        return CallOutcome.other_failure(f"network error: {e}")

    return classify_response(r)
