# cuub_backend/models/user_models.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


# 使用者角色，同時也寫進 user_stations.role
class UserType(str, Enum):
    HOST = "HOST"
    DISTRIBUTOR = "DISTRIBUTOR"
    ADMIN = "ADMIN"


class CreateUserRequest(BaseModel):
    username: Optional[str] = None
    type: Optional[str] = None
    station_id: Optional[str] = None
    station_ids: Optional[List[str]] = None


class UpdateUserRequest(BaseModel):
    username: Optional[str] = None
    type: Optional[str] = None
    station_id: Optional[str] = None
    station_ids: Optional[List[str]] = None


class User(BaseModel):
    id: int
    username: str
    type: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    stations: List[str] = []


class UserResponse(BaseModel):
    success: bool = True
    data: User
    message: Optional[str] = None


class UserListResponse(BaseModel):
    success: bool = True
    data: List[User]
    count: int


class DeletedUser(BaseModel):
    id: int
    username: str
    type: str


class DeleteUserResponse(BaseModel):
    success: bool = True
    data: DeletedUser
    message: str
