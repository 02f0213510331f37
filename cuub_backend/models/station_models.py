from pydantic import BaseModel, Field
from typing import List, Optional, Union
from cuub_backend.models.relink_models import SlotOccupancy


class PoppedBattery(BaseModel):
    slot: Union[int, str] = Field(..., description="Lock id，沒有的話用 slot 編號")
    manufacture_id: str = Field("", description="電池製造編號")


class SlotsResponse(BaseModel):
    success: bool = True
    data: SlotOccupancy


class PopResponse(BaseModel):
    success: bool = True
    data: List[PoppedBattery]
    count: int


class TokenResponse(BaseModel):
    success: bool = True
    token: Optional[str] = None
