# cuub_backend/services/station_service.py
import logging
import threading
from functools import partial
from typing import List

from cuub_backend.models.relink_models import SlotOccupancy, SlotResult
from cuub_backend.services import relink_client
from cuub_backend.services.exceptions import (
    PopDeclinedError,
    SlotOutOfRangeError,
    StationError,
    TokenUnavailableError,
    relink_error_for,
)
from cuub_backend.services.resilient_caller import ResilientCaller, get_resilient_caller

logger = logging.getLogger(__name__)

MIN_SLOT = 1
MAX_SLOT = 6


def parse_slot_occupancy(station_id: str, body) -> SlotOccupancy:
    """
    從 cabinet 回應取出 content[0].positionInfo 的 returnNum / borrowNum。
    有些櫃子本來就回空結構，找不到就當 0，不算錯誤。
    """
    content = body.get("content") if isinstance(body, dict) else None
    if content and isinstance(content, list) and isinstance(content[0], dict):
        position_info = content[0].get("positionInfo")
        if isinstance(position_info, dict):
            return SlotOccupancy(
                openSlots=position_info.get("returnNum") or 0,
                filledSlots=position_info.get("borrowNum") or 0,
            )

    logger.warning(f"No position info found for station {station_id}")
    return SlotOccupancy(openSlots=0, filledSlots=0)


class StationCommandDispatcher:
    def __init__(self, caller: ResilientCaller):
        self.caller = caller

    def get_slots(self, station_id: str) -> SlotOccupancy:
        outcome = self.caller.call_with_policy(partial(relink_client.fetch_cabinet, station_id))
        if not outcome.is_success:
            raise relink_error_for(outcome, f"read slots for station {station_id}")
        return parse_slot_occupancy(station_id, outcome.body)

    def pop_slot(self, station_id: str, slot: int) -> SlotResult:
        if not isinstance(slot, int) or isinstance(slot, bool) or not MIN_SLOT <= slot <= MAX_SLOT:
            raise SlotOutOfRangeError(
                f"Invalid slot number. Must be between {MIN_SLOT} and {MAX_SLOT}"
            )

        outcome = self.caller.call_with_policy(
            partial(relink_client.send_pop_command, station_id, slot)
        )
        if not outcome.is_success:
            raise relink_error_for(outcome, f"pop slot {slot} of station {station_id}")

        body = outcome.body if isinstance(outcome.body, dict) else {}
        if not body.get("borrowstatus"):
            raise PopDeclinedError("Failed to send pop command to Relink API", outcome)

        return SlotResult(
            slot=slot,
            lock_id=body.get("lockid"),
            manufacture_id=str(body.get("batteryid") or ""),
        )

    def pop_all(self, station_id: str) -> List[SlotResult]:
        """
        Pop slots 1..6 one by one (Relink serialises commands per cabinet).
        A failed slot is skipped; only popped slots are returned, in slot order.
        """
        popped = []
        for slot in range(MIN_SLOT, MAX_SLOT + 1):
            try:
                popped.append(self.pop_slot(station_id, slot))
            except TokenUnavailableError as e:
                # no token at all: abort only while no battery is out yet
                if not popped and e.outcome is not None and e.outcome.is_token_unavailable:
                    raise
                logger.error(f"Pop failed for station {station_id}, slot {slot}: {e}")
            except StationError as e:
                logger.error(f"Pop failed for station {station_id}, slot {slot}: {e}")
        return popped


_dispatcher = None
_dispatcher_lock = threading.Lock()


def get_station_dispatcher() -> StationCommandDispatcher:
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = StationCommandDispatcher(get_resilient_caller())
    return _dispatcher
