from __future__ import annotations

from typing import List, Optional

import numpy as np
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_healthworker, get_current_user, get_rng
from app.db.models import Child, HealthWorker
from app.db.session import get_db
from app.ml.nutrition.predictor import Measurements
from app.schemas.child import ChildCreate, ChildOut, Status
from app.schemas.health_record import HealthRecordOut, MeasurementIn
from app.services import data_access
from app.services.auth_state import CurrentUser
from app.services.errors import PermissionDenied, ValidationError


router = APIRouter(prefix="/children", tags=["children"])


def _visible_child(db: Session, child_id: str, user: CurrentUser) -> Child:
    child = data_access.get_child(db, child_id)
    if not user.is_admin and child.awc_center != user.awc_center:
        raise PermissionDenied("Child belongs to another AWC center")
    return child


@router.get("", response_model=List[ChildOut])
def list_children(
    center: Optional[str] = Query(None, description="AWC center (admin only)"),
    status: Optional[Status] = Query(None),
    search: Optional[str] = Query(None, description="Matches child or guardian name"),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    if not user.is_admin:
        # health workers only ever see their own center
        if not user.awc_center:
            raise ValidationError("AWC Center not found for your account")
        center = user.awc_center
    flt = data_access.ChildFilter(center=center, status=status, search_text=search)
    return data_access.list_children(db, flt)


@router.post("", response_model=ChildOut, status_code=201)
def register_child(
    req: ChildCreate,
    db: Session = Depends(get_db),
    healthworker: HealthWorker = Depends(get_current_healthworker),
):
    data = req.model_dump()
    data["date_of_birth"] = req.date_of_birth.isoformat()
    return data_access.create_child(db, data, healthworker)


@router.get("/{child_id}", response_model=ChildOut)
def get_child(
    child_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return _visible_child(db, child_id, user)


@router.get("/{child_id}/records", response_model=List[HealthRecordOut])
def list_records(
    child_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    _visible_child(db, child_id, user)
    return data_access.list_health_records(db, child_id)


@router.post("/{child_id}/records", response_model=HealthRecordOut, status_code=201)
def add_record(
    child_id: str,
    inp: MeasurementIn,
    db: Session = Depends(get_db),
    healthworker: HealthWorker = Depends(get_current_healthworker),
    rng: Optional[np.random.Generator] = Depends(get_rng),
):
    child = data_access.get_child(db, child_id)
    if child.awc_center != healthworker.awc_center:
        raise PermissionDenied("Child belongs to another AWC center")

    m = Measurements(
        height_cm=inp.height_cm,
        weight_kg=inp.weight_kg,
        edema=inp.edema,
        poverty_index=inp.poverty_index,
        sanitation_index=inp.sanitation_index,
        meals_per_day=inp.meals_per_day,
    )
    return data_access.create_health_record(db, child, m, healthworker, rng=rng)


@router.post("/{child_id}/repredict", response_model=HealthRecordOut, status_code=201)
def repredict(
    child_id: str,
    db: Session = Depends(get_db),
    healthworker: HealthWorker = Depends(get_current_healthworker),
    rng: Optional[np.random.Generator] = Depends(get_rng),
):
    child = data_access.get_child(db, child_id)
    if child.awc_center != healthworker.awc_center:
        raise PermissionDenied("Child belongs to another AWC center")
    return data_access.repredict_child(db, child, healthworker, rng=rng)
