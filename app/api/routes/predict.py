from __future__ import annotations

from typing import Optional

import numpy as np
from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, get_rng
from app.ml.nutrition.config import MODEL_VERSION
from app.ml.nutrition.predictor import InvalidMeasurementError, predict_status
from app.schemas.health_record import MeasurementIn, PredictionOut
from app.services.auth_state import CurrentUser
from app.services.data_access import probability_decimals
from app.services.errors import ValidationError


router = APIRouter(prefix="/predict", tags=["predict"])


@router.post("", response_model=PredictionOut)
def predict(
    inp: MeasurementIn,
    rng: Optional[np.random.Generator] = Depends(get_rng),
    _: CurrentUser = Depends(get_current_user),
) -> PredictionOut:
    """Stateless status prediction; nothing is persisted."""
    try:
        p = predict_status(
            inp.height_cm,
            inp.weight_kg,
            inp.edema,
            inp.poverty_index,
            inp.sanitation_index,
            inp.meals_per_day,
            rng=rng,
            decimals=probability_decimals(),
        )
    except InvalidMeasurementError as e:
        raise ValidationError(str(e)) from e

    return PredictionOut(
        predicted_status=p.status,
        sam_probability=p.sam_probability,
        mam_probability=p.mam_probability,
        normal_probability=p.normal_probability,
        bmi=round(p.bmi, 2),
        tier=p.tier,
        model_version=MODEL_VERSION,
    )
