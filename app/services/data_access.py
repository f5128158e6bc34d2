from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import load_config
from app.db.models import Child, HealthRecord, HealthWorker
from app.ml.nutrition.config import MODEL_VERSION, PROBABILITY_DECIMALS, STATUSES
from app.ml.nutrition.predictor import (
    InvalidMeasurementError,
    Measurements,
    StatusPrediction,
    predict_from_measurements,
)
from app.services.errors import DataAccessError, NotFoundError, ValidationError
from app.utils.time import now_utc


logger = logging.getLogger(__name__)

CHILD_FIELDS = ("name", "date_of_birth", "gender", "guardian_name", "city", "district")


@dataclass(frozen=True)
class ChildFilter:
    center: Optional[str] = None
    status: Optional[str] = None
    search_text: Optional[str] = None


def probability_decimals() -> int:
    return int((load_config().get("predictor") or {}).get("probability_decimals", PROBABILITY_DECIMALS))


def list_children(db: Session, flt: Optional[ChildFilter] = None) -> List[Child]:
    """Children matching the filter, newest registration first."""
    flt = flt or ChildFilter()
    if flt.status and flt.status not in STATUSES:
        raise ValidationError(f"Unknown status '{flt.status}'")

    try:
        q = db.query(Child)
        if flt.center:
            q = q.filter(Child.awc_center == flt.center)
        if flt.status:
            q = q.filter(Child.current_status == flt.status)
        text = (flt.search_text or "").strip().lower()
        if text:
            q = q.filter(
                or_(
                    Child.name.icontains(text, autoescape=True),
                    Child.guardian_name.icontains(text, autoescape=True),
                )
            )
        return q.order_by(Child.created_at.desc()).all()
    except SQLAlchemyError as e:
        logger.exception("Error fetching children")
        raise DataAccessError("Failed to fetch children data") from e


def get_child(db: Session, child_id: str) -> Child:
    try:
        child = db.get(Child, child_id)
    except SQLAlchemyError as e:
        logger.exception("Error fetching child %s", child_id)
        raise DataAccessError("Failed to fetch child") from e
    if child is None:
        raise NotFoundError(f"Child {child_id} not found")
    return child


def create_child(db: Session, data: Dict[str, Any], healthworker: HealthWorker) -> Child:
    """Register a child at the health worker's center with status 'normal'."""
    values = {k: str(data.get(k) or "").strip() for k in CHILD_FIELDS}
    missing = [k for k, v in values.items() if not v]
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}")
    if not healthworker.awc_center:
        raise ValidationError("AWC Center not found for your account")

    child = Child(
        **values,
        awc_center=healthworker.awc_center,
        healthworker_id=healthworker.id,
        current_status="normal",
    )
    try:
        db.add(child)
        db.commit()
        db.refresh(child)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error adding child")
        raise DataAccessError("Failed to register child") from e

    logger.info("Registered child %s at %s", child.id, child.awc_center)
    return child


def _record_from_prediction(
    child: Child,
    m: Measurements,
    prediction: StatusPrediction,
    recorded_by: Optional[HealthWorker],
) -> HealthRecord:
    return HealthRecord(
        child_id=child.id,
        recorded_by=recorded_by.id if recorded_by is not None else None,
        recorded_at=now_utc(),
        height=float(m.height_cm),
        weight=float(m.weight_kg),
        edema=bool(m.edema),
        poverty_index=int(m.poverty_index),
        sanitation_index=int(m.sanitation_index),
        meals_per_day=int(m.meals_per_day),
        predicted_status=prediction.status,
        sam_probability=prediction.sam_probability,
        mam_probability=prediction.mam_probability,
        normal_probability=prediction.normal_probability,
        model_version=MODEL_VERSION,
    )


def create_health_record(
    db: Session,
    child: Child,
    m: Measurements,
    recorded_by: Optional[HealthWorker],
    rng: Optional[np.random.Generator] = None,
) -> HealthRecord:
    """Predict, append the record and overwrite the child's status in one transaction."""
    try:
        prediction = predict_from_measurements(m, rng=rng, decimals=probability_decimals())
    except InvalidMeasurementError as e:
        raise ValidationError(str(e)) from e

    record = _record_from_prediction(child, m, prediction, recorded_by)
    try:
        db.add(record)
        child.current_status = prediction.status
        child.updated_at = now_utc()
        db.commit()
        db.refresh(record)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error adding health record for child %s", child.id)
        raise DataAccessError("Failed to add health record") from e

    logger.info(
        "Recorded %s for child %s (tier=%s, bmi=%.2f)",
        prediction.status,
        child.id,
        prediction.tier,
        prediction.bmi,
    )
    return record


def list_health_records(db: Session, child_id: str) -> List[HealthRecord]:
    """Records for a child, most recent first."""
    try:
        return (
            db.query(HealthRecord)
            .filter(HealthRecord.child_id == child_id)
            .order_by(HealthRecord.recorded_at.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("Error fetching health records for child %s", child_id)
        raise DataAccessError("Failed to fetch health records") from e


def measurements_of(record: HealthRecord) -> Measurements:
    return Measurements(
        height_cm=record.height,
        weight_kg=record.weight,
        edema=bool(record.edema),
        poverty_index=record.poverty_index,
        sanitation_index=record.sanitation_index,
        meals_per_day=record.meals_per_day,
    )


def repredict_child(
    db: Session,
    child: Child,
    recorded_by: Optional[HealthWorker],
    rng: Optional[np.random.Generator] = None,
) -> HealthRecord:
    """Re-run the predictor on the latest measurements and append the result."""
    records = list_health_records(db, child.id)
    if not records:
        raise ValidationError("No health records to repredict from; add a record first")
    return create_health_record(db, child, measurements_of(records[0]), recorded_by, rng=rng)
