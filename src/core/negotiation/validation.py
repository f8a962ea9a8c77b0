import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.core.negotiation.errors import NegotiationNotFoundError, NegotiationValidationError
from src.core.negotiation.models import (
    TIME_SLOT_LABELS,
    BookingRecord,
    ResponseDecision,
    ScheduleProposalSubmitRequest,
)

CANCELLED_BOOKING_STATUS = "cancelled"

_CLOCK_TIME_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")


def resolve_calendar_zone(timezone_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"NEGOTIATION_CALENDAR_TZ_INVALID:{timezone_name}") from exc


def calendar_today(*, now: datetime, zone: ZoneInfo) -> date:
    """Return the calendar date of ``now`` in the configured negotiation zone."""
    return now.astimezone(zone).date()


def normalize_optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def validate_proposed_date(*, proposed_date: date, today: date) -> None:
    if proposed_date <= today:
        raise NegotiationValidationError(
            "PROPOSED_DATE_NOT_IN_FUTURE",
            f"proposed_date must be after {today.isoformat()}",
            field="proposed_date",
        )


def validate_time_representation(
    *,
    time_slot: Optional[str],
    start_time: Optional[str],
    end_time: Optional[str],
) -> None:
    """Time of day is optional, but when present exactly one well-formed form is allowed.

    Either an enumerated slot, or an explicit ``start < end`` window in ``HH:MM``.
    """
    has_window = start_time is not None or end_time is not None
    if time_slot is not None and has_window:
        raise NegotiationValidationError(
            "TIME_REPRESENTATION_CONFLICT",
            "provide either proposed_time_slot or proposed_start_time/proposed_end_time",
            field="proposed_time_slot",
        )
    if time_slot is not None:
        if time_slot not in TIME_SLOT_LABELS:
            raise NegotiationValidationError(
                "TIME_SLOT_UNKNOWN",
                f"unrecognized time slot '{time_slot}'",
                field="proposed_time_slot",
            )
        return
    if not has_window:
        return
    if start_time is None or end_time is None:
        raise NegotiationValidationError(
            "TIME_RANGE_INCOMPLETE",
            "proposed_start_time and proposed_end_time must be supplied together",
            field="proposed_start_time" if start_time is None else "proposed_end_time",
        )
    for field_name, value in (
        ("proposed_start_time", start_time),
        ("proposed_end_time", end_time),
    ):
        if not _CLOCK_TIME_PATTERN.match(value):
            raise NegotiationValidationError(
                "TIME_RANGE_INVALID",
                f"{field_name} must be HH:MM (24h)",
                field=field_name,
            )
    # zero-padded HH:MM compares correctly as text
    if start_time >= end_time:
        raise NegotiationValidationError(
            "TIME_RANGE_INVALID",
            "proposed_start_time must be earlier than proposed_end_time",
            field="proposed_end_time",
        )


def validate_booking(*, booking: Optional[BookingRecord], booking_id: int) -> BookingRecord:
    if booking is None:
        raise NegotiationNotFoundError("BOOKING_NOT_FOUND", f"booking {booking_id} does not exist")
    if booking.status.strip().lower() == CANCELLED_BOOKING_STATUS:
        raise NegotiationValidationError(
            "BOOKING_CANCELLED",
            f"booking {booking_id} is cancelled",
            field="booking_id",
        )
    return booking


def validate_proposal_terms(payload: ScheduleProposalSubmitRequest, *, today: date) -> None:
    validate_proposed_date(proposed_date=payload.proposed_date, today=today)
    validate_time_representation(
        time_slot=normalize_optional_text(payload.proposed_time_slot),
        start_time=normalize_optional_text(payload.proposed_start_time),
        end_time=normalize_optional_text(payload.proposed_end_time),
    )


def validate_decline_reason(*, decision: ResponseDecision, message: Optional[str]) -> None:
    if decision == "decline" and normalize_optional_text(message) is None:
        raise NegotiationValidationError(
            "DECLINE_REASON_REQUIRED",
            "a response message is required when declining",
            field="message",
        )
