from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Status = Literal["sam", "mam", "normal"]


class ChildCreate(BaseModel):
    name: str = Field(..., min_length=1)
    date_of_birth: date
    gender: Literal["male", "female", "other"]
    guardian_name: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)


class ChildOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    date_of_birth: str
    gender: str
    guardian_name: str
    city: str
    district: str
    awc_center: str
    healthworker_id: Optional[str] = None
    current_status: Status
    created_at: datetime
    updated_at: datetime
