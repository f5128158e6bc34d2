from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.child import Status


class MeasurementIn(BaseModel):
    height_cm: float = Field(..., gt=0, description="Height in centimetres")
    weight_kg: float = Field(..., gt=0, description="Weight in kilograms")
    edema: bool = False
    poverty_index: int = Field(..., ge=0, le=10)
    sanitation_index: int = Field(..., ge=0, le=10)
    meals_per_day: int = Field(..., ge=1)


class PredictionOut(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    predicted_status: Status
    sam_probability: float
    mam_probability: float
    normal_probability: float
    bmi: float
    tier: Status
    model_version: str


class HealthRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    child_id: str
    recorded_by: Optional[str] = None
    recorded_at: datetime
    height: float
    weight: float
    edema: bool
    poverty_index: int
    sanitation_index: int
    meals_per_day: int
    predicted_status: Status
    sam_probability: float
    mam_probability: float
    normal_probability: float
    model_version: Optional[str] = None
