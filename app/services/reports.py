from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import Child
from app.ml.nutrition.config import STATUSES
from app.services.errors import DataAccessError, ValidationError
from app.utils.time import days_ago


logger = logging.getLogger(__name__)


def _half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _load_frame(db: Session, center: Optional[str], days: Optional[int]) -> pd.DataFrame:
    q = db.query(Child.awc_center, Child.current_status)
    if center:
        q = q.filter(Child.awc_center == center)
    if days is not None:
        q = q.filter(Child.created_at >= days_ago(days))
    rows = q.all()
    return pd.DataFrame([tuple(r) for r in rows], columns=["awc_center", "current_status"])


def center_report(db: Session, center: Optional[str] = None, days: Optional[int] = None) -> Dict[str, Any]:
    """Per-center status counts plus an overall status summary.

    ``days`` keeps only children registered in the last N days.
    """
    if days is not None and days <= 0:
        raise ValidationError("days must be a positive integer")

    try:
        df = _load_frame(db, center, days)
    except SQLAlchemyError as e:
        logger.exception("Error fetching report data")
        raise DataAccessError("Failed to fetch report data") from e

    centers = []
    if len(df):
        counts = (
            pd.crosstab(df["awc_center"], df["current_status"])
            .reindex(columns=list(STATUSES), fill_value=0)
        )
        totals = df.groupby("awc_center").size()
        for awc, row in counts.iterrows():
            centers.append(
                {
                    "awc_center": awc,
                    "sam_count": int(row["sam"]),
                    "mam_count": int(row["mam"]),
                    "normal_count": int(row["normal"]),
                    "total_count": int(totals[awc]),
                }
            )

    status_counts = {s: int((df["current_status"] == s).sum()) if len(df) else 0 for s in STATUSES}
    total = sum(status_counts.values())
    summary = [
        {
            "status": s.upper(),
            "count": c,
            "percentage": _half_up(c / total * 100) if total > 0 else 0,
        }
        for s, c in status_counts.items()
    ]

    return {
        "centers": centers,
        "summary": summary,
        "total_children": total,
        "center": center,
        "days": days,
    }


def center_summary(db: Session, center: str) -> Dict[str, Any]:
    """SAM/MAM/Normal counts for a single center (dashboard cards)."""
    report = center_report(db, center=center)
    row = next(
        (c for c in report["centers"] if c["awc_center"] == center),
        {"awc_center": center, "sam_count": 0, "mam_count": 0, "normal_count": 0, "total_count": 0},
    )
    return row
