import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.persistence_profile import (
    app_persistence_profile_name,
    validate_persistence_profile_guardrails,
)


def test_persistence_profile_defaults_to_local(monkeypatch):
    monkeypatch.delenv("APP_PERSISTENCE_PROFILE", raising=False)
    assert app_persistence_profile_name() == "LOCAL"


def test_persistence_profile_unknown_value_falls_back_to_local(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "staging")
    assert app_persistence_profile_name() == "LOCAL"


def test_local_profile_allows_in_memory_backend(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "local")
    validate_persistence_profile_guardrails()


@pytest.mark.parametrize("backend", ["IN_MEMORY", "SQL"])
def test_production_profile_requires_negotiation_postgres(monkeypatch, backend):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "PRODUCTION")
    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", backend)

    with pytest.raises(RuntimeError) as exc:
        validate_persistence_profile_guardrails()
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_NEGOTIATION_POSTGRES"


def test_production_profile_requires_negotiation_postgres_dsn(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "PRODUCTION")
    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", "POSTGRES")

    with pytest.raises(RuntimeError) as exc:
        validate_persistence_profile_guardrails()
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_NEGOTIATION_POSTGRES_DSN"


def test_production_profile_allows_postgres_backend(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "production")
    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", "POSTGRES")
    monkeypatch.setenv("NEGOTIATION_POSTGRES_DSN", "postgresql://u:p@localhost:5432/db")

    validate_persistence_profile_guardrails()


def test_startup_fails_fast_for_in_memory_backend_in_production(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "PRODUCTION")

    with pytest.raises(RuntimeError) as exc:
        with TestClient(app):
            pass
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_NEGOTIATION_POSTGRES"


def test_startup_fails_fast_for_unknown_calendar_timezone(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_CALENDAR_TZ", "Mars/Olympus_Mons")

    with pytest.raises(RuntimeError) as exc:
        with TestClient(app):
            pass
    assert str(exc.value) == "NEGOTIATION_CALENDAR_TZ_INVALID:Mars/Olympus_Mons"
