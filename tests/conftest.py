"""
FILE: tests/conftest.py
Shared fixtures for schedule negotiation tests.
"""

import json
from pathlib import Path

import pytest

from src.api.routers.negotiation import reset_negotiation_service_for_tests
from src.core.negotiation.service import ScheduleNegotiationService
from tests.factories import BOOKING_CATALOG, FixedClock, RecordingDispatcher, build_service


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if (
            _has_marker(item, "unit")
            or _has_marker(item, "integration")
            or _has_marker(item, "e2e")
        ):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        if "/tests/e2e/" in path:
            item.add_marker(pytest.mark.e2e)
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def negotiation_runtime_test_harness(monkeypatch: pytest.MonkeyPatch):
    """Run every test against the in-memory store with a deterministic booking catalog."""

    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", "IN_MEMORY")
    monkeypatch.setenv("NEGOTIATION_BOOKING_CATALOG_JSON", json.dumps(BOOKING_CATALOG))
    monkeypatch.delenv("APP_PERSISTENCE_PROFILE", raising=False)
    monkeypatch.delenv("NEGOTIATION_POSTGRES_DSN", raising=False)
    reset_negotiation_service_for_tests()
    yield
    reset_negotiation_service_for_tests()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def service(clock: FixedClock, dispatcher: RecordingDispatcher) -> ScheduleNegotiationService:
    return build_service(clock=clock, dispatcher=dispatcher)
