import os

# Must be set before any app module is imported
os.environ.setdefault("DATABASE_URI", "sqlite://:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DB_GENERATE_SCHEMAS", "true")

import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from helpers.jwt_token import require_professional
from helpers.scheduling_client import SchedulingServiceError, get_scheduling_client
from helpers.staged_schedule import draft_store
from main import app
from models.user import UserRole


PROFILE_ID = 7


class FakeSchedulingClient:
    """Stands in for the scheduling service; keeps the last saved week in memory."""

    def __init__(self, records=None):
        self.records = [dict(record) for record in records or []]
        self.saved_payloads = []
        self.fail_with = None
        self.fetch_count = 0
        self.delay = 0
        self._next_id = 100

    async def fetch_blocks(self, professional_id):
        self.fetch_count += 1
        await asyncio.sleep(self.delay)
        if self.fail_with:
            raise self.fail_with
        return [dict(record) for record in self.records]

    async def save_blocks(self, professional_id, records):
        await asyncio.sleep(self.delay)
        if self.fail_with:
            raise self.fail_with
        self.saved_payloads.append(records)
        self.records = []
        for record in records:
            self._next_id += 1
            self.records.append({"id": f"srv-{self._next_id}", **record})
        return len(records)


@pytest.fixture
def scheduling():
    return FakeSchedulingClient()


@pytest.fixture
def professional():
    user = SimpleNamespace(id=1, name="Dr. Rivera", role=UserRole.THERAPIST, can_manage_availability=True)
    profile = SimpleNamespace(id=PROFILE_ID, display_name="Dr. Rivera", timezone="America/Bogota")
    return user, profile


@pytest.fixture
def client(scheduling, professional):
    app.dependency_overrides[require_professional] = lambda: professional
    app.dependency_overrides[get_scheduling_client] = lambda: scheduling
    draft_store.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    draft_store.clear()


@pytest.fixture
def service_down():
    return SchedulingServiceError(status_code=503, detail="Service Unavailable")



@pytest.fixture
def api():
    """Client that runs the app lifespan against a fresh in-memory database."""
    with TestClient(app) as http:
        yield http
    app.dependency_overrides.clear()
    draft_store.clear()
