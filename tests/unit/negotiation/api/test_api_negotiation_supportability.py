import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.routers.negotiation import get_negotiation_service
from tests.factories import RecordingDispatcher, build_service, submit_request


def test_supportability_config_reports_runtime_settings(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_CALENDAR_TZ", "Europe/Dublin")
    monkeypatch.setenv("NEGOTIATION_REJECT_ELAPSED_ACCEPT", "false")

    with TestClient(app) as client:
        response = client.get("/schedule-negotiations/supportability/config")

    assert response.status_code == 200
    body = response.json()
    assert body["store_backend"] == "IN_MEMORY"
    assert body["backend_ready"] is True
    assert body["backend_init_error"] is None
    assert body["support_apis_enabled"] is True
    assert body["reject_elapsed_accept"] is False
    assert body["sync_booking_schedule"] is True
    assert body["calendar_timezone"] == "Europe/Dublin"
    assert body["time_slots"]["09:00"] == "9:00 AM - 11:00 AM"
    assert set(body["time_slots"]) == {
        "morning",
        "afternoon",
        "evening",
        "09:00",
        "11:00",
        "13:00",
        "15:00",
        "17:00",
    }


def test_supportability_config_reports_backend_init_error(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", "POSTGRES")

    with TestClient(app) as client:
        response = client.get("/schedule-negotiations/supportability/config")

    assert response.status_code == 200
    body = response.json()
    assert body["store_backend"] == "POSTGRES"
    assert body["backend_ready"] is False
    assert body["backend_init_error"] == "NEGOTIATION_POSTGRES_DSN_REQUIRED"


def test_support_apis_can_be_disabled(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_SUPPORT_APIS_ENABLED", "false")

    with TestClient(app) as client:
        config = client.get("/schedule-negotiations/supportability/config")
        events = client.get("/bookings/7/negotiation-events")

    assert config.status_code == 404
    assert config.json()["detail"] == "NEGOTIATION_SUPPORT_APIS_DISABLED"
    assert events.status_code == 404
    assert events.json()["detail"] == "NEGOTIATION_SUPPORT_APIS_DISABLED"


def test_negotiation_event_timeline_exposes_dispatch_failures():
    service = build_service(dispatcher=RecordingDispatcher(fail=True))
    service.submit_proposal(payload=submit_request())
    app.dependency_overrides[get_negotiation_service] = lambda: service
    try:
        with TestClient(app) as client:
            response = client.get("/bookings/7/negotiation-events")
    finally:
        app.dependency_overrides.pop(get_negotiation_service, None)

    assert response.status_code == 200
    events = response.json()["events"]
    assert len(events) == 1
    assert events[0]["event_type"] == "submitted"
    assert events[0]["recipient_role"] == "customer"
    assert events[0]["dispatch_status"] == "FAILED"
    assert events[0]["dispatch_error"]["code"] == "ConnectionError"


def test_negotiation_endpoints_return_503_when_backend_unavailable(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", "POSTGRES")

    with TestClient(app) as client:
        response = client.get("/bookings/7/schedule-negotiations")

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "NEGOTIATION_POSTGRES_DSN_REQUIRED"


def test_negotiation_service_is_unavailable_for_unknown_calendar_timezone(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_CALENDAR_TZ", "Mars/Olympus_Mons")

    with pytest.raises(HTTPException) as caught:
        get_negotiation_service()

    assert caught.value.status_code == 503
    assert caught.value.detail["code"] == "NEGOTIATION_CALENDAR_TZ_INVALID:Mars/Olympus_Mons"
