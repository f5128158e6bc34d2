"""
In-process identity provider.

Holds accounts and bearer-token sessions in the ``auth_users`` /
``auth_sessions`` tables and pushes SIGNED_IN / SIGNED_OUT events to
subscribers. Callers only see the narrow contract: sign_up, sign_in,
sign_out, current_session, get_session and subscribe.
"""
from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.db.models import AuthSessionRow, AuthUser
from app.services.errors import AuthError, ConflictError, DataAccessError
from app.utils.time import now_utc, to_utc_aware


logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

MIN_PASSWORD_LENGTH = 6
HASH_ALGO = "pbkdf2_sha256"


@dataclass(frozen=True)
class AuthSession:
    token: str
    user_id: str
    email: str
    expires_at: datetime
    user_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthEvent:
    kind: str
    session: Optional[AuthSession]


Listener = Callable[[AuthEvent], None]


def hash_password(password: str, iterations: int) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), iterations)
    return f"{HASH_ALGO}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    if algo != HASH_ALGO:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), int(iterations))
    return secrets.compare_digest(digest.hex(), expected)


class AuthGateway:
    def __init__(
        self,
        session_factory: Callable[[], Any],
        session_ttl_hours: float = 12,
        pbkdf2_iterations: int = 120_000,
    ):
        self._session_factory = session_factory
        self._ttl = timedelta(hours=session_ttl_hours)
        self._iterations = pbkdf2_iterations
        self._listeners: List[Listener] = []
        self._current: Optional[AuthSession] = None

    # ---- change notifications ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, session: Optional[AuthSession]) -> None:
        event = AuthEvent(kind=kind, session=session)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Auth listener failed on %s", kind)

    # ---- accounts ----

    def create_user(self, email: str, password: str, user_metadata: Optional[Dict[str, Any]] = None) -> str:
        """Create an account without signing it in; returns the new user id."""
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise AuthError("A valid email address is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

        db = self._session_factory()
        try:
            if db.query(AuthUser).filter(AuthUser.email == email).first() is not None:
                raise ConflictError("User already registered")
            user = AuthUser(
                email=email,
                password_hash=hash_password(password, self._iterations),
                user_metadata=dict(user_metadata or {}),
            )
            db.add(user)
            db.commit()
            return user.id
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to create auth user %s", email)
            raise DataAccessError("Failed to create account") from e
        finally:
            db.close()

    def delete_user(self, user_id: str) -> None:
        """Remove an account and its sessions; used to undo a half-finished registration."""
        db = self._session_factory()
        try:
            db.query(AuthSessionRow).filter(AuthSessionRow.user_id == user_id).delete()
            db.query(AuthUser).filter(AuthUser.id == user_id).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to delete auth user %s", user_id)
            raise DataAccessError("Failed to delete account") from e
        finally:
            db.close()
        if self._current is not None and self._current.user_id == user_id:
            self._end_current(self._current.token)

    def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        role: str = "healthworker",
        awc_center: Optional[str] = None,
    ) -> AuthSession:
        metadata = {"full_name": full_name, "role": role, "awc_center": awc_center}
        self.create_user(email, password, metadata)
        return self.sign_in(email, password)

    def sign_in(self, email: str, password: str) -> AuthSession:
        email = (email or "").strip().lower()
        db = self._session_factory()
        try:
            user = db.query(AuthUser).filter(AuthUser.email == email).first()
            if user is None or not verify_password(password or "", user.password_hash):
                raise AuthError("Invalid login credentials")

            row = AuthSessionRow(
                token=secrets.token_urlsafe(32),
                user_id=user.id,
                expires_at=now_utc() + self._ttl,
            )
            db.add(row)
            db.commit()
            session = AuthSession(
                token=row.token,
                user_id=user.id,
                email=user.email,
                expires_at=to_utc_aware(row.expires_at),
                user_metadata=dict(user.user_metadata or {}),
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Sign-in failed for %s", email)
            raise DataAccessError("Failed to sign in") from e
        finally:
            db.close()

        self._current = session
        logger.info("Signed in %s", session.email)
        self._emit(SIGNED_IN, session)
        return session

    def sign_out(self, token: Optional[str] = None) -> None:
        if token is None:
            if self._current is None:
                return
            token = self._current.token

        ended = self.get_session(token)
        db = self._session_factory()
        try:
            db.query(AuthSessionRow).filter(AuthSessionRow.token == token).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Sign-out failed")
            raise DataAccessError("Failed to sign out") from e
        finally:
            db.close()

        if self._end_current(token) is None and ended is not None:
            logger.info("Signed out %s", ended.email)
            self._emit(SIGNED_OUT, ended)

    def _end_current(self, token: str) -> Optional[AuthSession]:
        """Drop the current session if it carries ``token`` and notify subscribers."""
        if self._current is None or self._current.token != token:
            return None
        ended, self._current = self._current, None
        logger.info("Signed out %s", ended.email)
        self._emit(SIGNED_OUT, ended)
        return ended

    # ---- sessions ----

    def current_session(self) -> Optional[AuthSession]:
        if self._current is not None and self._current.expires_at <= now_utc():
            self._end_current(self._current.token)
        return self._current

    def get_session(self, token: str) -> Optional[AuthSession]:
        """Resolve a bearer token; expired sessions are removed and yield None."""
        if not token:
            return None
        db = self._session_factory()
        try:
            row = db.query(AuthSessionRow).filter(AuthSessionRow.token == token).first()
            if row is None:
                return None
            expires_at = to_utc_aware(row.expires_at)
            if expires_at <= now_utc():
                db.delete(row)
                db.commit()
                self._end_current(token)
                return None
            user = db.get(AuthUser, row.user_id)
            if user is None:
                return None
            return AuthSession(
                token=row.token,
                user_id=user.id,
                email=user.email,
                expires_at=expires_at,
                user_metadata=dict(user.user_metadata or {}),
            )
        finally:
            db.close()
