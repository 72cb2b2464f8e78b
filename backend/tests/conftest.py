import pytest
from fastapi.testclient import TestClient #fake http client that calls the FastAPI routes without running a real server.

from app.main import app
from app.services.registry import clear_registry
from app.services.session_store import SessionStore

TEACHER_HEADERS = {"X-Teacher-Id": "teacher-1"}


@pytest.fixture() #test client
def client():
    clear_registry() #schedules live in process memory, so earlier tests would otherwise leak into this one.
    with TestClient(app, headers=TEACHER_HEADERS) as test_client:
        yield test_client
    clear_registry()


@pytest.fixture()
def store():
    return SessionStore()
