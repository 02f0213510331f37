# cuub_backend/models/relink_models.py
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

# reason used when no token could be read or minted at all
TOKEN_UNAVAILABLE = "token_unavailable"


class CallStatus(str, Enum):
    SUCCESS = "SUCCESS"
    AUTH_FAILURE = "AUTH_FAILURE"      # 401 / 403
    OTHER_FAILURE = "OTHER_FAILURE"    # network, timeout, other non-2xx


class CallOutcome(BaseModel):
    """Result of a single Relink API invocation."""

    kind: CallStatus
    body: Optional[Any] = None
    reason: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def success(cls, body: Any, status_code: int = 200) -> "CallOutcome":
        return cls(kind=CallStatus.SUCCESS, body=body, status_code=status_code)

    @classmethod
    def auth_failure(cls, status_code: int) -> "CallOutcome":
        return cls(kind=CallStatus.AUTH_FAILURE, reason="unauthorized", status_code=status_code)

    @classmethod
    def other_failure(cls, reason: str, status_code: Optional[int] = None) -> "CallOutcome":
        return cls(kind=CallStatus.OTHER_FAILURE, reason=reason, status_code=status_code)

    @property
    def is_success(self) -> bool:
        return self.kind == CallStatus.SUCCESS

    @property
    def is_auth_failure(self) -> bool:
        return self.kind == CallStatus.AUTH_FAILURE

    @property
    def is_token_unavailable(self) -> bool:
        return self.kind == CallStatus.OTHER_FAILURE and self.reason == TOKEN_UNAVAILABLE


class SlotOccupancy(BaseModel):
    openSlots: int = Field(0, description="空槽數（可歸還）")
    filledSlots: int = Field(0, description="有電池的槽數（可借出）")


class SlotResult(BaseModel):
    slot: int = Field(..., ge=1, le=6, description="Requested slot number")
    lock_id: Optional[Union[int, str]] = Field(None, description="Lock id reported by Relink")
    manufacture_id: str = Field("", description="Battery id reported by Relink")
