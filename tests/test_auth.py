from datetime import timedelta

import pytest

from app.db.models import Profile
from app.services import auth_gateway as auth_gateway_module
from app.services.auth_gateway import SIGNED_IN, SIGNED_OUT, AuthGateway, hash_password, verify_password
from app.services.auth_state import AuthState
from app.services.errors import AuthError, ConflictError
from app.utils.time import now_utc


def test_password_hash_roundtrip():
    stored = hash_password("s3cret!", 1000)
    assert stored.startswith("pbkdf2_sha256$1000$")
    assert verify_password("s3cret!", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("s3cret!", "garbage")


def test_sign_up_then_sign_in_emits_events(gateway):
    events = []
    gateway.subscribe(events.append)

    session = gateway.sign_up("Worker@Example.org", "secret1", "Meena", role="healthworker", awc_center="AWC 3")
    assert session.email == "worker@example.org"
    assert session.user_metadata == {"full_name": "Meena", "role": "healthworker", "awc_center": "AWC 3"}
    assert gateway.current_session() == session
    assert [e.kind for e in events] == [SIGNED_IN]

    again = gateway.sign_in("worker@example.org", "secret1")
    assert again.token != session.token
    assert gateway.get_session(session.token) is not None


def test_sign_in_errors_are_readable(gateway):
    gateway.sign_up("a@b.org", "secret1", "A")
    with pytest.raises(AuthError, match="Invalid login credentials"):
        gateway.sign_in("a@b.org", "nope")
    with pytest.raises(AuthError, match="Invalid login credentials"):
        gateway.sign_in("missing@b.org", "secret1")
    with pytest.raises(ConflictError, match="already registered"):
        gateway.sign_up("a@b.org", "secret1", "A again")
    with pytest.raises(AuthError, match="at least 6"):
        gateway.sign_up("c@b.org", "123", "C")


def test_sign_out_clears_session_and_notifies(gateway):
    events = []
    session = gateway.sign_up("a@b.org", "secret1", "A")
    unsubscribe = gateway.subscribe(events.append)

    gateway.sign_out()
    assert gateway.current_session() is None
    assert gateway.get_session(session.token) is None
    assert [(e.kind, e.session.token) for e in events] == [(SIGNED_OUT, session.token)]

    unsubscribe()
    gateway.sign_in("a@b.org", "secret1")
    assert len(events) == 1


def test_expired_session_is_dropped(session_factory):
    gw = AuthGateway(session_factory, session_ttl_hours=-1, pbkdf2_iterations=1000)
    session = gw.sign_up("a@b.org", "secret1", "A")
    assert gw.get_session(session.token) is None
    assert gw.current_session() is None


def test_failing_listener_does_not_break_sign_in(gateway):
    def boom(event):
        raise RuntimeError("listener failed")

    gateway.subscribe(boom)
    assert gateway.sign_up("a@b.org", "secret1", "A").email == "a@b.org"


def test_first_sign_in_creates_default_healthworker_profile(gateway, session_factory, db):
    state = AuthState(gateway, session_factory)
    state.start()

    gateway.sign_up("meena.k@awc.local", "secret1", "Meena K", role="admin")

    user = state.current_user
    assert user is not None
    assert user.role == "healthworker"
    assert user.full_name == "Meena K"
    assert user.username == "meena.k"

    profiles = db.query(Profile).all()
    assert len(profiles) == 1
    assert profiles[0].role == "healthworker"

    gateway.sign_out()
    assert state.current_user is None
    assert state.session is None


def test_existing_profile_is_kept(gateway, session_factory, db):
    user_id = gateway.create_user("boss@awc.local", "secret1", {})
    db.add(Profile(user_id=user_id, role="admin", full_name="Boss", username="boss"))
    db.commit()

    state = AuthState(gateway, session_factory)
    state.start()
    gateway.sign_in("boss@awc.local", "secret1")
    assert state.current_user.is_admin
    assert state.current_user.full_name == "Boss"


def test_default_full_name_without_metadata(gateway, session_factory):
    gateway.create_user("anon@awc.local", "secret1")
    state = AuthState(gateway, session_factory)
    state.start()
    gateway.sign_in("anon@awc.local", "secret1")
    assert state.current_user.full_name == "User"


def test_start_picks_up_existing_session_and_subscribes_once(gateway, session_factory):
    gateway.sign_up("a@awc.local", "secret1", "A")
    state = AuthState(gateway, session_factory)
    state.start()
    state.start()
    assert state.current_user is not None
    assert len(gateway._listeners) == 1

    state.stop()
    gateway.sign_out()
    assert state.current_user is not None


def test_other_users_sign_out_keeps_projection(gateway, session_factory):
    other = gateway.sign_up("b@awc.local", "secret1", "B")
    gateway.sign_up("a@awc.local", "secret1", "A")
    state = AuthState(gateway, session_factory)
    state.start()

    gateway.sign_out(other.token)
    assert state.current_user is not None
    assert state.current_user.email == "a@awc.local"


def _later(hours: float):
    moment = now_utc() + timedelta(hours=hours)
    return lambda: moment


def test_sign_out_after_expiry_clears_projection(gateway, session_factory, monkeypatch):
    state = AuthState(gateway, session_factory)
    state.start()
    events = []
    gateway.subscribe(events.append)
    session = gateway.sign_up("x@awc.local", "secret1", "X")
    assert state.current_user.email == "x@awc.local"

    monkeypatch.setattr(auth_gateway_module, "now_utc", _later(2))
    gateway.sign_out()

    assert gateway.current_session() is None
    assert state.current_user is None
    assert state.session is None
    assert [(e.kind, e.session.token) for e in events] == [(SIGNED_IN, session.token), (SIGNED_OUT, session.token)]


def test_expiry_seen_by_current_session_notifies_once(gateway, session_factory, monkeypatch):
    state = AuthState(gateway, session_factory)
    state.start()
    gateway.sign_up("x@awc.local", "secret1", "X")
    events = []
    gateway.subscribe(events.append)

    monkeypatch.setattr(auth_gateway_module, "now_utc", _later(2))
    assert gateway.current_session() is None
    assert gateway.current_session() is None
    assert [e.kind for e in events] == [SIGNED_OUT]
    assert state.current_user is None


def test_delete_user_removes_account_and_sessions(gateway):
    session = gateway.sign_up("gone@awc.local", "secret1", "Gone")
    events = []
    gateway.subscribe(events.append)

    gateway.delete_user(session.user_id)

    assert gateway.get_session(session.token) is None
    assert gateway.current_session() is None
    assert [e.kind for e in events] == [SIGNED_OUT]
    with pytest.raises(AuthError, match="Invalid login credentials"):
        gateway.sign_in("gone@awc.local", "secret1")
    assert gateway.create_user("gone@awc.local", "secret1")
