from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Integral, Real
from typing import Optional, Tuple

import numpy as np

from .config import (
    INDEX_RANGE,
    MAM_BMI_MAX,
    MAM_INDEX_MIN,
    MAM_MEALS_MIN,
    MIN_MEALS,
    PROBABILITY_DECIMALS,
    SAM_BMI_MAX,
    SAM_INDEX_MIN,
    SAM_MEALS_MIN,
    TIER_RANGES,
)


class InvalidMeasurementError(ValueError):
    """Raised when a measurement falls outside the accepted input contract."""


@dataclass(frozen=True)
class Measurements:
    height_cm: float
    weight_kg: float
    edema: bool
    poverty_index: int
    sanitation_index: int
    meals_per_day: int


@dataclass(frozen=True)
class StatusPrediction:
    status: str
    sam_probability: float
    mam_probability: float
    normal_probability: float
    tier: str
    bmi: float

    def probabilities(self) -> Tuple[float, float, float]:
        return (self.sam_probability, self.mam_probability, self.normal_probability)


def validate_measurements(m: Measurements) -> None:
    """Reject (never clamp) inputs outside the accepted ranges."""
    for name in ("height_cm", "weight_kg"):
        v = getattr(m, name)
        if isinstance(v, bool) or not isinstance(v, Real) or not math.isfinite(v) or v <= 0:
            raise InvalidMeasurementError(f"{name} must be a positive number, got {v!r}")

    if not isinstance(m.edema, (bool, np.bool_)):
        raise InvalidMeasurementError(f"edema must be a boolean, got {m.edema!r}")

    lo, hi = INDEX_RANGE
    for name in ("poverty_index", "sanitation_index"):
        v = getattr(m, name)
        if isinstance(v, bool) or not isinstance(v, Integral) or not lo <= v <= hi:
            raise InvalidMeasurementError(f"{name} must be an integer in {lo}..{hi}, got {v!r}")

    v = m.meals_per_day
    if isinstance(v, bool) or not isinstance(v, Integral) or v < MIN_MEALS:
        raise InvalidMeasurementError(f"meals_per_day must be an integer >= {MIN_MEALS}, got {v!r}")


def compute_bmi(height_cm: float, weight_kg: float) -> float:
    height_m = height_cm / 100.0
    return weight_kg / (height_m ** 2)


def select_tier(m: Measurements, bmi: Optional[float] = None) -> str:
    if bmi is None:
        bmi = compute_bmi(m.height_cm, m.weight_kg)

    if (
        m.edema
        or bmi < SAM_BMI_MAX
        or m.poverty_index > SAM_INDEX_MIN
        or m.sanitation_index > SAM_INDEX_MIN
        or m.meals_per_day < SAM_MEALS_MIN
    ):
        return "sam"
    if (
        bmi < MAM_BMI_MAX
        or m.poverty_index > MAM_INDEX_MIN
        or m.sanitation_index > MAM_INDEX_MIN
        or m.meals_per_day < MAM_MEALS_MIN
    ):
        return "mam"
    return "normal"


def draw_probabilities(tier: str, rng: np.random.Generator) -> Tuple[float, float, float]:
    """One independent uniform draw per class inside the tier's ranges (not normalized)."""
    ranges = TIER_RANGES[tier]
    return tuple(float(lo + rng.random() * (hi - lo)) for lo, hi in ranges)  # type: ignore[return-value]


def normalize(draws: Tuple[float, float, float]) -> Tuple[float, float, float]:
    total = sum(draws)
    return tuple(d / total for d in draws)  # type: ignore[return-value]


def pick_status(sam: float, mam: float, normal: float) -> str:
    # Tie-break priority: sam > mam > normal, first strictly-greater comparison wins
    if sam > mam and sam > normal:
        return "sam"
    if mam > normal:
        return "mam"
    return "normal"


def predict_status(
    height_cm: float,
    weight_kg: float,
    edema: bool,
    poverty_index: int,
    sanitation_index: int,
    meals_per_day: int,
    rng: Optional[np.random.Generator] = None,
    decimals: Optional[int] = PROBABILITY_DECIMALS,
) -> StatusPrediction:
    """
    Heuristic malnutrition status from one set of measurements.

    The probabilities are a randomized draw inside fixed per-tier ranges, so
    repeated calls with the same inputs differ unless a seeded ``rng`` is
    passed. Status is decided on the unrounded probabilities; ``decimals``
    only controls the rounding of the returned values (None keeps them raw).
    """
    m = Measurements(
        height_cm=height_cm,
        weight_kg=weight_kg,
        edema=edema,
        poverty_index=poverty_index,
        sanitation_index=sanitation_index,
        meals_per_day=meals_per_day,
    )
    validate_measurements(m)

    if rng is None:
        rng = np.random.default_rng()

    bmi = compute_bmi(m.height_cm, m.weight_kg)
    tier = select_tier(m, bmi)
    sam, mam, normal = normalize(draw_probabilities(tier, rng))
    status = pick_status(sam, mam, normal)

    if decimals is not None:
        sam, mam, normal = (round(p, decimals) for p in (sam, mam, normal))

    return StatusPrediction(
        status=status,
        sam_probability=sam,
        mam_probability=mam,
        normal_probability=normal,
        tier=tier,
        bmi=bmi,
    )


def predict_from_measurements(
    m: Measurements,
    rng: Optional[np.random.Generator] = None,
    decimals: Optional[int] = PROBABILITY_DECIMALS,
) -> StatusPrediction:
    return predict_status(
        m.height_cm,
        m.weight_kg,
        m.edema,
        m.poverty_index,
        m.sanitation_index,
        m.meals_per_day,
        rng=rng,
        decimals=decimals,
    )
