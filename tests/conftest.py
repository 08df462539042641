import pytest
from fastapi.testclient import TestClient

from app.modules.store.gateway import PersistenceGateway
from app.modules.store.memory import MemoryDocumentStore
from helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def gateway(store):
    return PersistenceGateway(store, "test-app", "user-1")


@pytest.fixture
def app_client():
    from app.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers(app_client):
    session = app_client.post("/auth/anonymous").json()
    return {"Authorization": f"Bearer {session['session_token']}"}
