# cuub_backend/api/station_api.py
import logging
from fastapi import APIRouter, Depends

from cuub_backend.models.station_models import PopResponse, PoppedBattery, SlotsResponse
from cuub_backend.models.relink_models import SlotResult
from cuub_backend.services.exceptions import SlotOutOfRangeError
from cuub_backend.services.station_service import (
    MAX_SLOT,
    MIN_SLOT,
    StationCommandDispatcher,
    get_station_dispatcher,
)

router = APIRouter()

logger = logging.getLogger(__name__)


def _popped(result: SlotResult) -> PoppedBattery:
    return PoppedBattery(slot=result.lock_id or result.slot, manufacture_id=result.manufacture_id)


@router.get("/stations/{station_id}/slots", response_model=SlotsResponse)
def get_station_slots(
    station_id: str,
    dispatcher: StationCommandDispatcher = Depends(get_station_dispatcher),
):
    """
    查詢櫃子的空槽 / 有電池槽數量 (openSlots / filledSlots)。
    """
    logger.info(f"GET /stations/{station_id}/slots endpoint called")
    occupancy = dispatcher.get_slots(station_id)
    return SlotsResponse(data=occupancy)


# /all 要放在 /{slot} 前面，不然會被當成 slot
@router.post("/pop/{station_id}/all", response_model=PopResponse)
def pop_all_batteries(
    station_id: str,
    dispatcher: StationCommandDispatcher = Depends(get_station_dispatcher),
):
    """
    Pop out all batteries from slots 1-6. Slots that fail are left out of `data`.
    """
    logger.info(f"POST /pop/{station_id}/all endpoint called")
    popped = [_popped(result) for result in dispatcher.pop_all(station_id)]
    return PopResponse(data=popped, count=len(popped))


@router.post("/pop/{station_id}/{slot}", response_model=PopResponse)
def pop_battery(
    station_id: str,
    slot: str,
    dispatcher: StationCommandDispatcher = Depends(get_station_dispatcher),
):
    logger.info(f"POST /pop/{station_id}/{slot} endpoint called")
    try:
        slot_num = int(slot)
    except ValueError:
        raise SlotOutOfRangeError(f"Invalid slot number. Must be between {MIN_SLOT} and {MAX_SLOT}")

    result = dispatcher.pop_slot(station_id, slot_num)
    return PopResponse(data=[_popped(result)], count=1)
