import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from app.config import Settings
from app.main import create_app
from app.storage.db import enable_sqlite_foreign_keys

LLM_URL = "https://llm.test/v1/messages"
TEST_PASSWORD = "correct-horse-battery"


def make_settings(**overrides) -> Settings:
    values = dict(
        database_url="sqlite://",
        jwt_secret="test-secret",
        llm_api_key="test-key",
        llm_base_url=LLM_URL,
        llm_timeout_s=5.0,
        message_quota_per_user=10,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(name="settings")
def settings_fixture():
    return make_settings()


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="app")
def app_fixture(settings, engine):
    return create_app(settings=settings, engine=engine)


@pytest.fixture(name="client")
def client_fixture(app):
    return TestClient(app)


def register(client, email="cook@example.com", password=TEST_PASSWORD) -> dict:
    response = client.post("/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="user")
def user_fixture(client):
    return register(client)


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(user):
    return bearer(user["token"])
