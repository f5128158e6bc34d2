from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Role = Literal["admin", "healthworker"]


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)
    role: Role = "healthworker"
    awc_center: Optional[str] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: "UserOut"


class UserOut(BaseModel):
    user_id: str
    email: str
    role: Role
    full_name: str
    awc_center: Optional[str] = None
    username: Optional[str] = None


class HealthWorkerCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    awc_center: str = Field(..., min_length=1)


class HealthWorkerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    full_name: str
    username: str
    awc_center: str
    is_active: bool
    created_at: datetime


class HealthWorkerCredentials(BaseModel):
    healthworker: HealthWorkerOut
    email: str
    username: str
    password: str


SessionOut.model_rebuild()
