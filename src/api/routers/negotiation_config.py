import os
from typing import cast

from src.core.negotiation.bookings import parse_booking_catalog
from src.core.negotiation.repository import BookingDirectory, ScheduleNegotiationRepository
from src.core.negotiation.validation import resolve_calendar_zone
from src.infrastructure.negotiation import (
    EnvJsonBookingDirectory,
    InMemoryScheduleNegotiationRepository,
    PostgresBookingDirectory,
    PostgresScheduleNegotiationRepository,
    SqliteBookingDirectory,
    SqliteScheduleNegotiationRepository,
)


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def negotiation_store_backend_name() -> str:
    backend = os.getenv("NEGOTIATION_STORE_BACKEND", "IN_MEMORY").strip().upper()
    if backend == "POSTGRES":
        return "POSTGRES"
    if backend in {"SQL", "SQLITE"}:
        return "SQL"
    return "IN_MEMORY"


def negotiation_sql_path() -> str:
    return os.getenv("NEGOTIATION_SQL_PATH", ".data/schedule_negotiation.db").strip()


def negotiation_postgres_dsn() -> str:
    return os.getenv("NEGOTIATION_POSTGRES_DSN", "").strip()


def negotiation_booking_catalog_json() -> str:
    return os.getenv("NEGOTIATION_BOOKING_CATALOG_JSON", "")


def negotiation_calendar_timezone() -> str:
    return os.getenv("NEGOTIATION_CALENDAR_TZ", "UTC").strip() or "UTC"


def validate_negotiation_calendar_timezone() -> None:
    resolve_calendar_zone(negotiation_calendar_timezone())


def _postgres_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [
        ConnectionError,
        OSError,
        TimeoutError,
        TypeError,
        ValueError,
    ]
    try:
        import psycopg
    except ImportError:
        pass
    else:
        types.append(psycopg.Error)
    return tuple(types)


def build_repository() -> ScheduleNegotiationRepository:
    backend = negotiation_store_backend_name()
    if backend == "POSTGRES":
        dsn = negotiation_postgres_dsn()
        if not dsn:
            raise RuntimeError("NEGOTIATION_POSTGRES_DSN_REQUIRED")
        try:
            return cast(
                ScheduleNegotiationRepository, PostgresScheduleNegotiationRepository(dsn=dsn)
            )
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("NEGOTIATION_POSTGRES_CONNECTION_FAILED") from exc
    if backend == "SQL":
        return cast(
            ScheduleNegotiationRepository,
            SqliteScheduleNegotiationRepository(database_path=negotiation_sql_path()),
        )
    return cast(ScheduleNegotiationRepository, InMemoryScheduleNegotiationRepository())


def build_booking_directory() -> BookingDirectory:
    backend = negotiation_store_backend_name()
    if backend == "POSTGRES":
        dsn = negotiation_postgres_dsn()
        if not dsn:
            raise RuntimeError("NEGOTIATION_POSTGRES_DSN_REQUIRED")
        return cast(BookingDirectory, PostgresBookingDirectory(dsn=dsn))
    if backend == "SQL":
        directory = SqliteBookingDirectory(database_path=negotiation_sql_path())
        for booking in parse_booking_catalog(negotiation_booking_catalog_json()).values():
            if directory.get_booking(booking_id=booking.booking_id) is None:
                directory.upsert_booking(booking)
        return cast(BookingDirectory, directory)
    return cast(
        BookingDirectory,
        EnvJsonBookingDirectory(catalog_json=negotiation_booking_catalog_json()),
    )
