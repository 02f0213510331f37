# cuub_backend/api/user_api.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from cuub_backend.models.user_models import (
    CreateUserRequest,
    DeleteUserResponse,
    UpdateUserRequest,
    UserListResponse,
    UserResponse,
    UserType,
)
from cuub_backend.services import user_service
from cuub_backend.services.db_client import get_engine

router = APIRouter()

logger = logging.getLogger(__name__)

VALID_TYPES = [t.value for t in UserType]


def _validate_type(user_type):
    if user_type is not None and user_type not in VALID_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid type. Must be one of: {', '.join(VALID_TYPES)}",
        )


def _conflict(e: IntegrityError) -> HTTPException:
    # username 重複 vs. 同一個 station 指派兩次
    if "username" in str(e.orig):
        return HTTPException(status_code=409, detail="Username already exists")
    return HTTPException(status_code=409, detail="User-station assignment already exists")


@router.get("/users", response_model=UserListResponse)
def get_users(engine: Engine = Depends(get_engine)):
    """Fetch all users with their station ids."""
    users = user_service.list_users(engine)
    return {"success": True, "data": users, "count": len(users)}


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, engine: Engine = Depends(get_engine)):
    user = user_service.get_user(engine, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": user}


@router.post("/users", status_code=201, response_model=UserResponse)
def create_user(payload: CreateUserRequest, engine: Engine = Depends(get_engine)):
    if not payload.username:
        raise HTTPException(status_code=400, detail="Missing required field: username is required")
    _validate_type(payload.type)

    user_type = payload.type or UserType.HOST.value
    stations = user_service.stations_to_assign(payload.station_id, payload.station_ids)

    try:
        user = user_service.create_user(engine, payload.username, user_type, stations)
    except IntegrityError as e:
        logger.error(f"Error creating user {payload.username}: {e}")
        raise _conflict(e)

    return {"success": True, "data": user, "message": "User created successfully"}


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(user_id: int, payload: UpdateUserRequest, engine: Engine = Depends(get_engine)):
    provided = payload.model_fields_set
    if not provided & {"username", "type", "station_id", "station_ids"}:
        raise HTTPException(
            status_code=400,
            detail="At least one field (username, type, station_id/station_ids) must be provided",
        )
    _validate_type(payload.type)

    fields = {}
    if "username" in provided and payload.username is not None:
        fields["username"] = payload.username
    if "type" in provided and payload.type is not None:
        fields["type"] = payload.type

    station_ids = None
    if "station_id" in provided or "station_ids" in provided:
        station_ids = user_service.stations_to_assign(payload.station_id, payload.station_ids)

    try:
        user = user_service.update_user(engine, user_id, fields, station_ids)
    except IntegrityError as e:
        logger.error(f"Error updating user {user_id}: {e}")
        raise _conflict(e)

    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": user, "message": "User updated successfully"}


@router.delete("/users/{user_id}", response_model=DeleteUserResponse)
def delete_user(user_id: int, engine: Engine = Depends(get_engine)):
    deleted = user_service.delete_user(engine, user_id)
    if deleted is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": deleted, "message": "User deleted successfully"}
