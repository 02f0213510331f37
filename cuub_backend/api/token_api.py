# cuub_backend/api/token_api.py
from fastapi import APIRouter, Depends, HTTPException

from cuub_backend.models.station_models import TokenResponse
from cuub_backend.services.token_refresher import SingleFlightRefresher, get_token_refresher

router = APIRouter()


@router.get("/token", response_model=TokenResponse)
def mint_token(refresher: SingleFlightRefresher = Depends(get_token_refresher)):
    """
    強制 refresh 一次 Relink token（跟其他 request 共用同一個 in-flight login），
    成功後 token 已經寫進 DB。
    """
    token = refresher.refresh()
    if not token:
        raise HTTPException(status_code=503, detail="Failed to obtain token")
    return TokenResponse(token=token)
