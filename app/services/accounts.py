from __future__ import annotations

import logging
import secrets
import string
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import load_config
from app.db.models import AuthUser, HealthWorker, Profile
from app.services.auth_gateway import AuthGateway, AuthSession
from app.services.auth_state import ROLES, CurrentUser
from app.services.errors import DataAccessError, NotFoundError, PermissionDenied, ValidationError


logger = logging.getLogger(__name__)

USERNAME_PREFIX = "health"
PASSWORD_ALPHABET = string.ascii_lowercase + string.digits
PASSWORD_LENGTH = 8


def _email_domain() -> str:
    return (load_config().get("auth") or {}).get("account_email_domain", "awc.local")


def admin_exists(db: Session) -> bool:
    return db.query(Profile).filter(Profile.role == "admin").first() is not None


def register_account(
    db: Session,
    gateway: AuthGateway,
    *,
    email: str,
    password: str,
    full_name: str,
    role: str = "healthworker",
    awc_center: Optional[str] = None,
) -> AuthSession:
    """Self sign-up: account + profile, then sign in.

    Only the first admin may register itself; later admins are refused.
    """
    if role not in ROLES:
        raise ValidationError(f"Unknown role '{role}'")
    if not (full_name or "").strip():
        raise ValidationError("Full name is required")
    if role == "admin" and admin_exists(db):
        raise PermissionDenied("Admin accounts can only be created by an existing admin")

    user_id = gateway.create_user(
        email,
        password,
        {"full_name": full_name, "role": role, "awc_center": awc_center},
    )
    username = email.strip().lower().split("@")[0]
    awc_center = (awc_center or "").strip() or None
    try:
        db.add(
            Profile(
                user_id=user_id,
                role=role,
                full_name=full_name.strip(),
                username=username,
                awc_center=awc_center,
            )
        )
        # health workers need a roster row before they can register children
        if role == "healthworker" and awc_center:
            taken = db.query(HealthWorker).filter(HealthWorker.username == username).first()
            db.add(
                HealthWorker(
                    user_id=user_id,
                    full_name=full_name.strip(),
                    username=_next_username(db) if taken else username,
                    awc_center=awc_center,
                )
            )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error creating profile for %s", email)
        gateway.delete_user(user_id)
        raise DataAccessError("Failed to create profile") from e

    return gateway.sign_in(email, password)


def _next_username(db: Session) -> str:
    """Next free ``health###``; skips names held by a roster row or an account email."""
    domain = _email_domain()
    n = db.query(HealthWorker).count() + 1
    while True:
        candidate = f"{USERNAME_PREFIX}{n:03d}"
        taken = (
            db.query(HealthWorker).filter(HealthWorker.username == candidate).first() is not None
            or db.query(AuthUser).filter(AuthUser.email == f"{candidate}@{domain}").first() is not None
        )
        if not taken:
            return candidate
        n += 1


def generate_password() -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(PASSWORD_LENGTH))


def create_healthworker(
    db: Session,
    gateway: AuthGateway,
    full_name: str,
    awc_center: str,
) -> Tuple[HealthWorker, dict]:
    """Create a health worker with generated credentials.

    Returns the row plus the one-time credentials (email, username, password).
    """
    full_name = (full_name or "").strip()
    awc_center = (awc_center or "").strip()
    if not full_name or not awc_center:
        raise ValidationError("Please fill in all fields")

    try:
        username = _next_username(db)
    except SQLAlchemyError as e:
        logger.exception("Error allocating health worker username")
        raise DataAccessError("Failed to add health worker") from e

    password = generate_password()
    email = f"{username}@{_email_domain()}"
    user_id = gateway.create_user(
        email,
        password,
        {"full_name": full_name, "role": "healthworker", "awc_center": awc_center},
    )

    worker = HealthWorker(user_id=user_id, full_name=full_name, username=username, awc_center=awc_center)
    try:
        db.add(worker)
        db.add(
            Profile(
                user_id=user_id,
                role="healthworker",
                full_name=full_name,
                username=username,
                awc_center=awc_center,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error adding health worker %s", username)
        gateway.delete_user(user_id)
        raise DataAccessError("Failed to add health worker") from e

    db.refresh(worker)
    logger.info("Added health worker %s at %s", username, awc_center)
    return worker, {"email": email, "username": username, "password": password}


def list_healthworkers(db: Session, include_inactive: bool = False) -> List[HealthWorker]:
    try:
        q = db.query(HealthWorker)
        if not include_inactive:
            q = q.filter(HealthWorker.is_active.is_(True))
        return q.order_by(HealthWorker.created_at.asc()).all()
    except SQLAlchemyError as e:
        logger.exception("Error fetching health workers")
        raise DataAccessError("Failed to fetch health workers") from e


def deactivate_healthworker(db: Session, healthworker_id: str) -> HealthWorker:
    """Soft removal: the row and its children/records stay intact."""
    worker = db.get(HealthWorker, healthworker_id)
    if worker is None:
        raise NotFoundError(f"Health worker {healthworker_id} not found")
    try:
        worker.is_active = False
        db.commit()
        db.refresh(worker)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error removing health worker %s", healthworker_id)
        raise DataAccessError("Failed to remove health worker") from e
    return worker


def ensure_not_removed(db: Session, user: CurrentUser) -> None:
    """Refuse health workers whose roster entries have all been deactivated."""
    if user.role != "healthworker":
        return
    try:
        rows = db.query(HealthWorker.is_active).filter(HealthWorker.user_id == user.user_id).all()
    except SQLAlchemyError as e:
        logger.exception("Error checking roster for %s", user.email)
        raise DataAccessError("Failed to load user profile") from e
    if rows and not any(active for (active,) in rows):
        raise PermissionDenied("Health worker account has been removed")


def get_healthworker_for_user(db: Session, user_id: str) -> HealthWorker:
    worker = (
        db.query(HealthWorker)
        .filter(HealthWorker.user_id == user_id, HealthWorker.is_active.is_(True))
        .first()
    )
    if worker is None:
        raise NotFoundError("Healthworker record not found")
    return worker
