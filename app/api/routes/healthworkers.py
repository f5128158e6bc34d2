from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_auth_gateway, require_admin
from app.db.session import get_db
from app.schemas.accounts import HealthWorkerCreate, HealthWorkerCredentials, HealthWorkerOut
from app.services import accounts
from app.services.auth_gateway import AuthGateway
from app.services.auth_state import CurrentUser


router = APIRouter(prefix="/healthworkers", tags=["healthworkers"])


@router.get("", response_model=List[HealthWorkerOut])
def list_healthworkers(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    return accounts.list_healthworkers(db, include_inactive=include_inactive)


@router.post("", response_model=HealthWorkerCredentials, status_code=201)
def add_healthworker(
    req: HealthWorkerCreate,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
    _: CurrentUser = Depends(require_admin),
) -> HealthWorkerCredentials:
    """Create a health worker; the generated password is only returned here."""
    worker, creds = accounts.create_healthworker(db, gateway, req.full_name, req.awc_center)
    return HealthWorkerCredentials(
        healthworker=HealthWorkerOut.model_validate(worker),
        **creds,
    )


@router.delete("/{healthworker_id}", response_model=HealthWorkerOut)
def remove_healthworker(
    healthworker_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
):
    return accounts.deactivate_healthworker(db, healthworker_id)
