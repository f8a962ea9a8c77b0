from src.infrastructure.negotiation.env_json import EnvJsonBookingDirectory
from src.infrastructure.negotiation.in_memory import InMemoryScheduleNegotiationRepository
from src.infrastructure.negotiation.postgres import (
    PostgresBookingDirectory,
    PostgresScheduleNegotiationRepository,
)
from src.infrastructure.negotiation.sqlite import (
    SqliteBookingDirectory,
    SqliteScheduleNegotiationRepository,
)

__all__ = [
    "EnvJsonBookingDirectory",
    "InMemoryScheduleNegotiationRepository",
    "PostgresBookingDirectory",
    "PostgresScheduleNegotiationRepository",
    "SqliteBookingDirectory",
    "SqliteScheduleNegotiationRepository",
]
