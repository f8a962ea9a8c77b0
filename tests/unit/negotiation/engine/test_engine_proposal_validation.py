from datetime import datetime, timezone

import pytest

from src.core.negotiation.errors import NegotiationNotFoundError, NegotiationValidationError
from src.core.negotiation.models import BookingRecord
from src.core.negotiation.validation import (
    calendar_today,
    resolve_calendar_zone,
    validate_booking,
    validate_decline_reason,
    validate_proposal_terms,
    validate_proposed_date,
    validate_time_representation,
)
from tests.factories import TODAY, days_ahead, submit_request


@pytest.mark.parametrize("days", [0, -1, -30])
def test_proposed_date_today_or_past_is_rejected(days):
    with pytest.raises(NegotiationValidationError) as caught:
        validate_proposed_date(proposed_date=days_ahead(days), today=TODAY)
    assert caught.value.code == "PROPOSED_DATE_NOT_IN_FUTURE"
    assert caught.value.field == "proposed_date"


def test_proposed_date_tomorrow_is_the_earliest_accepted_date():
    validate_proposed_date(proposed_date=days_ahead(1), today=TODAY)


@pytest.mark.parametrize(
    "slot", ["morning", "afternoon", "evening", "09:00", "11:00", "13:00", "15:00", "17:00"]
)
def test_recognized_time_slots_are_accepted(slot):
    validate_time_representation(time_slot=slot, start_time=None, end_time=None)


def test_time_of_day_is_optional():
    validate_time_representation(time_slot=None, start_time=None, end_time=None)


def test_unknown_time_slot_is_rejected():
    with pytest.raises(NegotiationValidationError) as caught:
        validate_time_representation(time_slot="midnight", start_time=None, end_time=None)
    assert caught.value.code == "TIME_SLOT_UNKNOWN"
    assert caught.value.field == "proposed_time_slot"


def test_slot_and_explicit_window_cannot_both_be_supplied():
    with pytest.raises(NegotiationValidationError) as caught:
        validate_time_representation(time_slot="morning", start_time="09:00", end_time="11:00")
    assert caught.value.code == "TIME_REPRESENTATION_CONFLICT"


def test_explicit_window_requires_both_ends():
    with pytest.raises(NegotiationValidationError) as caught:
        validate_time_representation(time_slot=None, start_time="09:00", end_time=None)
    assert caught.value.code == "TIME_RANGE_INCOMPLETE"
    assert caught.value.field == "proposed_end_time"

    with pytest.raises(NegotiationValidationError) as caught:
        validate_time_representation(time_slot=None, start_time=None, end_time="11:00")
    assert caught.value.field == "proposed_start_time"


@pytest.mark.parametrize(
    ("start", "end"),
    [("11:00", "09:00"), ("10:00", "10:00"), ("9:00", "11:00"), ("24:00", "25:00")],
)
def test_malformed_or_inverted_window_is_rejected(start, end):
    with pytest.raises(NegotiationValidationError) as caught:
        validate_time_representation(time_slot=None, start_time=start, end_time=end)
    assert caught.value.code == "TIME_RANGE_INVALID"


def test_well_formed_window_is_accepted():
    validate_time_representation(time_slot=None, start_time="09:30", end_time="12:00")


def test_proposal_terms_treat_blank_slot_as_absent():
    validate_proposal_terms(submit_request(slot="  "), today=TODAY)


def test_missing_booking_is_not_found():
    try:
        validate_booking(booking=None, booking_id=404)
    except NegotiationNotFoundError as exc:
        assert exc.code == "BOOKING_NOT_FOUND"
    else:
        raise AssertionError("Expected NegotiationNotFoundError for missing booking")


def test_cancelled_booking_is_rejected():
    booking = BookingRecord(booking_id=9, installer_id=4, status="Cancelled")
    with pytest.raises(NegotiationValidationError) as caught:
        validate_booking(booking=booking, booking_id=9)
    assert caught.value.code == "BOOKING_CANCELLED"
    assert caught.value.field == "booking_id"


def test_active_booking_is_returned():
    booking = BookingRecord(booking_id=7, installer_id=3, status="confirmed")
    assert validate_booking(booking=booking, booking_id=7) is booking


@pytest.mark.parametrize("message", [None, "", "   "])
def test_decline_without_reason_is_rejected(message):
    with pytest.raises(NegotiationValidationError) as caught:
        validate_decline_reason(decision="decline", message=message)
    assert caught.value.code == "DECLINE_REASON_REQUIRED"
    assert caught.value.field == "message"


def test_accept_does_not_require_reason():
    validate_decline_reason(decision="accept", message=None)
    validate_decline_reason(decision="decline", message="not available")


def test_calendar_today_uses_configured_zone():
    late_evening_utc = datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc)
    utc = resolve_calendar_zone("UTC")
    dublin = resolve_calendar_zone("Europe/Dublin")
    assert calendar_today(now=late_evening_utc, zone=utc).isoformat() == "2026-10-18"
    assert calendar_today(now=late_evening_utc, zone=dublin).isoformat() == "2026-10-19"


def test_resolve_calendar_zone_rejects_unknown_zone():
    with pytest.raises(RuntimeError, match="NEGOTIATION_CALENDAR_TZ_INVALID:Mars/Olympus_Mons"):
        resolve_calendar_zone("Mars/Olympus_Mons")
