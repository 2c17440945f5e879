"""Pytest fixtures for unit and API tests.

The Vote API is exercised against the in-memory store, so these tests
need no database, Redis or network.
"""

import os

# Settings are read at import time, so the environment is fixed first.
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

from typing import Callable, Dict, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from election_services.vote_api.auth import ADMIN_ROLE, create_access_token
from election_services.vote_api.main import create_app
from election_services.vote_api.memory_store import InMemoryElectionStore
from election_services.vote_api.service import VoteService


@pytest.fixture
def store() -> InMemoryElectionStore:
    """Fresh in-memory election store."""
    return InMemoryElectionStore()


@pytest.fixture
def service(store: InMemoryElectionStore) -> VoteService:
    return VoteService(store)


@pytest_asyncio.fixture
async def election(store: InMemoryElectionStore) -> dict:
    """Election e1 with candidates A and B, both at zero votes."""
    return await store.create_election("Class President", ["A", "B"], election_id="e1")


@pytest.fixture
def make_headers() -> Callable[..., Dict[str, str]]:
    """Return a function building Authorization headers for a subject."""
    def _make(subject: str, role: str = "voter") -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(subject, role=role)}"}

    return _make


@pytest.fixture
def admin_headers(make_headers) -> Dict[str, str]:
    return make_headers("admin-1", role=ADMIN_ROLE)


@pytest.fixture
def api_client(store: InMemoryElectionStore) -> Generator[TestClient, None, None]:
    """TestClient bound to an app backed by the fixture store."""
    with TestClient(create_app(store)) as client:
        yield client


@pytest.fixture
def api_election(api_client: TestClient, admin_headers) -> dict:
    """Election created through the admin API, with candidates A and B."""
    response = api_client.post(
        "/api/admin/elections",
        json={"title": "Class President", "candidates": ["A", "B"]},
        headers=admin_headers
    )
    assert response.status_code == 201
    return response.json()
