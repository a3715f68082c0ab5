from __future__ import annotations

import os
import tempfile
from pathlib import Path

os.environ.setdefault("NEXUS_DB_FILE", str(Path(tempfile.gettempdir()) / "nexus-test.db"))

import pytest
import httpx
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from database import SqlBlobStore
from main import app
from models import Snapshot
from routers.clinical import get_assistant
from seed import DEMO_PASSWORD, DEMO_USERS, build_seed_snapshot
from services.clinical_ai import ClinicalAssistant
from services.operations import OperationsEngine
from store import StateStore, get_store

TEST_ENGINE = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TEST_STORAGE_KEY = "NEXUS_HMS_TEST"


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(TEST_ENGINE)
    SQLModel.metadata.create_all(TEST_ENGINE)


@pytest.fixture(scope="session")
def seed_snapshot() -> Snapshot:
    # Hashing the demo passwords is slow, build them once.
    return build_seed_snapshot()


@pytest.fixture
def blob_store() -> SqlBlobStore:
    return SqlBlobStore(TEST_ENGINE)


@pytest.fixture
def store(blob_store, seed_snapshot) -> StateStore:
    state_store = StateStore(
        blob_store,
        seed_snapshot.model_copy(deep=True),
        key=TEST_STORAGE_KEY,
        backoff_seconds=0,
    )
    state_store.commit(state_store.read())
    return state_store


@pytest.fixture
def ops_for(store):
    """Engine factory acting as one of the demo users, e.g. ops_for("nurse")."""

    def _factory(role: str = "admin", strict_appointments: bool = False) -> OperationsEngine:
        return OperationsEngine(store, actor=DEMO_USER_IDS[role], strict_appointments=strict_appointments)

    return _factory


@pytest.fixture
def admin_ops(ops_for) -> OperationsEngine:
    return ops_for("admin")


class FakeCompletion:
    def __init__(self, text="Assessment: stable.", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def __call__(self, system: str, prompt: str):
        self.calls.append((system, prompt))
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def fake_completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _install_overrides(store: StateStore, completion: FakeCompletion):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_assistant] = lambda: ClinicalAssistant(complete=completion, api_key="test-key")


@pytest.fixture
def client(store, fake_completion):
    _install_overrides(store, fake_completion)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(store, fake_completion):
    _install_overrides(store, fake_completion)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


ROLE_KEYS = {
    "ADMIN": "admin",
    "DOCTOR": "doctor",
    "NURSE": "nurse",
    "RECEPTIONIST": "receptionist",
    "MEDICAL_RECORDS": "records",
}

DEMO_USER_IDS = {ROLE_KEYS[spec["role"].value]: spec["id"] for spec in DEMO_USERS}


@pytest.fixture
def seeded_users():
    return {
        ROLE_KEYS[spec["role"].value]: {
            "id": spec["id"],
            "name": spec["name"],
            "email": spec["email"],
            "password": DEMO_PASSWORD,
            "role": spec["role"],
        }
        for spec in DEMO_USERS
    }


def _login(client: TestClient, email: str, password: str) -> dict[str, str]:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client: TestClient, seeded_users):
    return _login(client, seeded_users["admin"]["email"], seeded_users["admin"]["password"])


@pytest.fixture
def doctor_headers(client: TestClient, seeded_users):
    return _login(client, seeded_users["doctor"]["email"], seeded_users["doctor"]["password"])


@pytest.fixture
def nurse_headers(client: TestClient, seeded_users):
    return _login(client, seeded_users["nurse"]["email"], seeded_users["nurse"]["password"])


@pytest.fixture
def receptionist_headers(client: TestClient, seeded_users):
    return _login(client, seeded_users["receptionist"]["email"], seeded_users["receptionist"]["password"])


@pytest.fixture
def records_headers(client: TestClient, seeded_users):
    return _login(client, seeded_users["records"]["email"], seeded_users["records"]["password"])
