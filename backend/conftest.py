import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import models  # noqa: F401,E402
from auth import create_token  # noqa: E402
from database import Base, get_db  # noqa: E402
from main import app  # noqa: E402


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def app_with_db(db_session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_with_db):
    return TestClient(app_with_db)


@pytest.fixture
def admin_token():
    return create_token({"user_id": 1, "role": "admin"})


@pytest.fixture
def user_token():
    return create_token({"user_id": 42, "role": "user"})


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def user_headers(user_token):
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture
def call_id(client, admin_headers):
    resp = client.post("/api/v1/startup-calls", json={"title": "Spring Call 2025"}, headers=admin_headers)
    assert resp.status_code == 201
    return resp.json()["id"]


def budget_payload(**overrides):
    payload = {
        "title": "Seed Budget",
        "description": "First round",
        "total_amount": "10000",
        "currency": "USD",
        "fiscal_year": "2025",
        "status": "active",
        "categories": [
            {"name": "Marketing", "allocated_amount": "6000"},
            {"name": "Operations", "allocated_amount": "3000"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_budget_payload():
    return budget_payload

