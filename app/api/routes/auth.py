from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_auth_gateway, get_auth_session, get_current_user
from app.db.session import get_db
from app.schemas.accounts import SessionOut, SignInRequest, SignUpRequest, UserOut
from app.services.accounts import ensure_not_removed, register_account
from app.services.auth_gateway import AuthGateway, AuthSession
from app.services.auth_state import CurrentUser, resolve_profile
from app.services.errors import PermissionDenied


router = APIRouter(prefix="/auth", tags=["auth"])


def _session_out(db: Session, session: AuthSession) -> SessionOut:
    user = resolve_profile(db, session)
    return SessionOut(
        access_token=session.token,
        expires_at=session.expires_at,
        user=UserOut(**asdict(user)),
    )


@router.post("/signup", response_model=SessionOut, status_code=201)
def signup(
    req: SignUpRequest,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> SessionOut:
    session = register_account(
        db,
        gateway,
        email=req.email,
        password=req.password,
        full_name=req.full_name,
        role=req.role,
        awc_center=req.awc_center,
    )
    return _session_out(db, session)


@router.post("/login", response_model=SessionOut)
def login(
    req: SignInRequest,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> SessionOut:
    session = gateway.sign_in(req.email, req.password)
    try:
        ensure_not_removed(db, resolve_profile(db, session))
    except PermissionDenied:
        gateway.sign_out(session.token)
        raise
    return _session_out(db, session)


@router.post("/logout", status_code=204)
def logout(
    session: AuthSession = Depends(get_auth_session),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> None:
    gateway.sign_out(session.token)


@router.get("/me", response_model=UserOut)
def me(user: CurrentUser = Depends(get_current_user)) -> UserOut:
    return UserOut(**asdict(user))
