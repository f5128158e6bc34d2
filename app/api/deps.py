from __future__ import annotations

from typing import Optional

import numpy as np
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.config import load_config
from app.db.models import HealthWorker
from app.db.session import SessionLocal, get_db
from app.services.accounts import ensure_not_removed, get_healthworker_for_user
from app.services.auth_gateway import AuthGateway, AuthSession
from app.services.auth_state import CurrentUser, resolve_profile
from app.services.errors import AuthError, PermissionDenied


_GATEWAY: Optional[AuthGateway] = None


def get_auth_gateway() -> AuthGateway:
    """Process-wide gateway, built lazily from config."""
    global _GATEWAY
    if _GATEWAY is None:
        auth_cfg = load_config().get("auth") or {}
        _GATEWAY = AuthGateway(
            SessionLocal,
            session_ttl_hours=float(auth_cfg.get("session_ttl_hours", 12)),
            pbkdf2_iterations=int(auth_cfg.get("pbkdf2_iterations", 120_000)),
        )
    return _GATEWAY


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError("Not signed in")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Expected 'Authorization: Bearer <token>'")
    return token.strip()


def get_auth_session(
    authorization: Optional[str] = Header(None),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> AuthSession:
    session = gateway.get_session(_bearer_token(authorization))
    if session is None:
        raise AuthError("Session expired or invalid; please sign in again")
    return session


def get_current_user(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
) -> CurrentUser:
    user = resolve_profile(db, session)
    ensure_not_removed(db, user)
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise PermissionDenied("Admin access required")
    return user


def require_healthworker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != "healthworker":
        raise PermissionDenied("Health worker access required")
    return user


def get_current_healthworker(
    user: CurrentUser = Depends(require_healthworker),
    db: Session = Depends(get_db),
) -> HealthWorker:
    return get_healthworker_for_user(db, user.user_id)


def get_rng() -> Optional[np.random.Generator]:
    """Entropy source for the status predictor; None means a fresh unseeded generator."""
    return None
