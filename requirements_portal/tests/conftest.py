"""
Shared fixtures: settings, a memory store, the in-memory requirements
server, and a factory for engines wired to it.
"""

from __future__ import annotations

from typing import Callable, Optional

import httpx
import pytest

from requirements_portal.api import create_app
from requirements_portal.config import Settings
from requirements_portal.orchestration.engine import RequirementsEngine
from requirements_portal.persistence.kv_store import KeyValueStore, MemoryKeyValueStore
from requirements_portal.services.identity import static_identity
from requirements_portal.services.requirements_api import RequirementsApiClient

BASE_URL = "http://testserver/api"


def offline_transport() -> httpx.MockTransport:
    """A server with no submissions that accepts every write."""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"submissions": []})
        return httpx.Response(200, json={"message": "ok"})

    return httpx.MockTransport(handler)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url=BASE_URL,
        public_files_url="http://testserver/files",
        delete_retry_attempts=3,
        delete_retry_backoff_seconds=0.0,
        storage_backend="memory",
    )


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def make_engine(settings: Settings, store: KeyValueStore) -> Callable[..., RequirementsEngine]:
    """Build an engine; defaults to the offline transport and the shared store."""

    def factory(
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_id: str = "student-1",
        kv: Optional[KeyValueStore] = None,
    ) -> RequirementsEngine:
        identity = static_identity(user_id=user_id)
        api = RequirementsApiClient(
            identity,
            base_url=BASE_URL,
            transport=transport or offline_transport(),
            settings=settings,
        )
        return RequirementsEngine(identity, api, kv if kv is not None else store, settings=settings)

    return factory


@pytest.fixture
def server_engine(app, make_engine) -> Callable[..., RequirementsEngine]:
    """Engines that talk to the in-memory FastAPI server."""

    def factory(user_id: str = "student-1", kv: Optional[KeyValueStore] = None) -> RequirementsEngine:
        return make_engine(transport=httpx.ASGITransport(app=app), user_id=user_id, kv=kv)

    return factory
