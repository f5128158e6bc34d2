from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import Profile
from app.services.auth_gateway import SIGNED_IN, SIGNED_OUT, AuthEvent, AuthGateway, AuthSession
from app.services.errors import DataAccessError


logger = logging.getLogger(__name__)

ROLES = ("admin", "healthworker")
DEFAULT_ROLE = "healthworker"


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    email: str
    role: str
    full_name: str
    awc_center: Optional[str] = None
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _to_current_user(session: AuthSession, profile: Profile) -> CurrentUser:
    return CurrentUser(
        user_id=session.user_id,
        email=session.email,
        role=profile.role,
        full_name=profile.full_name,
        awc_center=profile.awc_center,
        username=profile.username,
    )


def resolve_profile(db: Session, session: AuthSession) -> CurrentUser:
    """Load the profile behind a session, creating the default one on first sign-in."""
    try:
        profile = db.query(Profile).filter(Profile.user_id == session.user_id).first()
        if profile is None:
            meta = session.user_metadata or {}
            profile = Profile(
                user_id=session.user_id,
                full_name=meta.get("full_name") or "User",
                role=DEFAULT_ROLE,
                username=session.email.split("@")[0],
            )
            db.add(profile)
            db.commit()
            db.refresh(profile)
            logger.info("Created default %s profile for %s", DEFAULT_ROLE, session.email)
        return _to_current_user(session, profile)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error fetching profile for %s", session.email)
        raise DataAccessError("Failed to load user profile") from e


class AuthState:
    """Single current-user projection kept in sync with the gateway's events."""

    def __init__(self, gateway: AuthGateway, session_factory: Callable[[], Any]):
        self._gateway = gateway
        self._session_factory = session_factory
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.session: Optional[AuthSession] = None
        self.current_user: Optional[CurrentUser] = None

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._gateway.subscribe(self._on_event)
        existing = self._gateway.current_session()
        if existing is not None:
            self._apply(existing)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_event(self, event: AuthEvent) -> None:
        if event.kind == SIGNED_IN and event.session is not None:
            self._apply(event.session)
        elif event.kind == SIGNED_OUT and event.session is not None:
            if self.session is not None and event.session.token == self.session.token:
                self.session = None
                self.current_user = None

    def _apply(self, session: AuthSession) -> None:
        self.session = session
        db = self._session_factory()
        try:
            self.current_user = resolve_profile(db, session)
        finally:
            db.close()
