from __future__ import annotations

import os
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
os.environ.setdefault("NUTRITION_CONFIG", str(ROOT / "configs" / "config.yaml"))

import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.api.deps import get_auth_gateway, get_rng
from app.api.main import app
from app.db.models import Base, HealthWorker
from app.db.session import get_db
from app.services.auth_gateway import AuthGateway


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway(session_factory):
    # few iterations keep hashing fast in tests
    return AuthGateway(session_factory, session_ttl_hours=1, pbkdf2_iterations=1000)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def worker(db):
    hw = HealthWorker(user_id="user-hw-1", full_name="Asha Devi", username="health001", awc_center="AWC Center 1")
    db.add(hw)
    db.commit()
    db.refresh(hw)
    return hw


@pytest.fixture
def client(session_factory, gateway):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_auth_gateway] = lambda: gateway
    app.dependency_overrides[get_rng] = lambda: np.random.default_rng(7)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    r = client.post(
        "/auth/signup",
        json={"email": "admin@awc.local", "password": "admin-pass", "full_name": "District Admin", "role": "admin"},
    )
    assert r.status_code == 201, r.text
    return bearer(r.json()["access_token"])


def make_healthworker(client, admin_headers, full_name: str, awc_center: str) -> dict:
    r = client.post("/healthworkers", json={"full_name": full_name, "awc_center": awc_center}, headers=admin_headers)
    assert r.status_code == 201, r.text
    creds = r.json()
    r = client.post("/auth/login", json={"email": creds["email"], "password": creds["password"]})
    assert r.status_code == 200, r.text
    return {"creds": creds, "headers": bearer(r.json()["access_token"])}


@pytest.fixture
def hw_headers(client, admin_headers):
    return make_healthworker(client, admin_headers, "Asha Devi", "AWC Center 1")["headers"]


@pytest.fixture
def new_healthworker(client, admin_headers):
    def _make(full_name: str, awc_center: str) -> dict:
        return make_healthworker(client, admin_headers, full_name, awc_center)

    return _make
