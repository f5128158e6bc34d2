from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_admin
from app.db.session import get_db
from app.schemas.reports import CenterCounts, CenterReport
from app.services.auth_state import CurrentUser
from app.services.errors import ValidationError
from app.services.reports import center_report, center_summary


router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/centers", response_model=CenterReport)
def centers(
    center: Optional[str] = None,
    days: Optional[int] = Query(None, gt=0, description="Only children registered in the last N days"),
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    return center_report(db, center=center, days=days)


@router.get("/summary", response_model=CenterCounts)
def summary(
    center: Optional[str] = None,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Status counts for one center; health workers always get their own."""
    if not user.is_admin:
        center = user.awc_center
    if not center:
        raise ValidationError("AWC Center not found for your account")
    return center_summary(db, center)
