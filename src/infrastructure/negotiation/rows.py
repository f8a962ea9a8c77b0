import json
from datetime import date, datetime
from typing import Optional

from src.core.negotiation.models import (
    BookingRecord,
    NegotiationEventRecord,
    ScheduleProposalRecord,
)

PROPOSAL_COLUMNS = """
    proposal_id,
    booking_id,
    installer_id,
    proposed_date,
    proposed_time_slot,
    proposed_start_time,
    proposed_end_time,
    proposal_message,
    proposed_by,
    status,
    response_message,
    responded_by,
    responded_at,
    created_at
"""

EVENT_COLUMNS = """
    event_id,
    booking_id,
    proposal_id,
    event_type,
    actor_role,
    recipient_role,
    occurred_at,
    payload_json,
    dispatch_status,
    dispatch_error_json
"""

BOOKING_COLUMNS = """
    booking_id,
    installer_id,
    customer_id,
    status,
    scheduled_date,
    scheduled_time_slot
"""


def timestamp_text(value: datetime) -> str:
    # fixed-width text keeps lexical and chronological order aligned
    return value.isoformat(timespec="microseconds")


def optional_timestamp_text(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return timestamp_text(value)


def json_dump(value: dict) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def optional_json_dump(value: Optional[dict]) -> Optional[str]:
    if value is None:
        return None
    return json_dump(value)


def proposal_insert_args(proposal: ScheduleProposalRecord) -> tuple:
    return (
        proposal.booking_id,
        proposal.installer_id,
        proposal.proposed_date.isoformat(),
        proposal.proposed_time_slot,
        proposal.proposed_start_time,
        proposal.proposed_end_time,
        proposal.proposal_message,
        proposal.proposed_by,
        proposal.status,
        proposal.response_message,
        proposal.responded_by,
        optional_timestamp_text(proposal.responded_at),
        timestamp_text(proposal.created_at),
    )


def event_insert_args(event: NegotiationEventRecord) -> tuple:
    return (
        event.event_id,
        event.booking_id,
        event.proposal_id,
        event.event_type,
        event.actor_role,
        event.recipient_role,
        timestamp_text(event.occurred_at),
        json_dump(event.payload_json),
        event.dispatch_status,
        optional_json_dump(event.dispatch_error_json),
    )


def to_proposal(row) -> Optional[ScheduleProposalRecord]:
    if row is None:
        return None
    return ScheduleProposalRecord(
        proposal_id=int(row["proposal_id"]),
        booking_id=int(row["booking_id"]),
        installer_id=_optional_int(row["installer_id"]),
        proposed_date=date.fromisoformat(row["proposed_date"]),
        proposed_time_slot=row["proposed_time_slot"],
        proposed_start_time=row["proposed_start_time"],
        proposed_end_time=row["proposed_end_time"],
        proposal_message=row["proposal_message"],
        proposed_by=row["proposed_by"],
        status=row["status"],
        response_message=row["response_message"],
        responded_by=row["responded_by"],
        responded_at=_optional_datetime(row["responded_at"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def to_event(row) -> NegotiationEventRecord:
    return NegotiationEventRecord(
        event_id=row["event_id"],
        booking_id=int(row["booking_id"]),
        proposal_id=_optional_int(row["proposal_id"]),
        event_type=row["event_type"],
        actor_role=row["actor_role"],
        recipient_role=row["recipient_role"],
        occurred_at=datetime.fromisoformat(row["occurred_at"]),
        payload_json=json.loads(row["payload_json"]),
        dispatch_status=row["dispatch_status"],
        dispatch_error_json=_optional_load_json(row["dispatch_error_json"]),
    )


def to_booking(row) -> Optional[BookingRecord]:
    if row is None:
        return None
    return BookingRecord(
        booking_id=int(row["booking_id"]),
        installer_id=_optional_int(row["installer_id"]),
        customer_id=row["customer_id"],
        status=row["status"],
        scheduled_date=(
            date.fromisoformat(row["scheduled_date"]) if row["scheduled_date"] else None
        ),
        scheduled_time_slot=row["scheduled_time_slot"],
    )


def _optional_int(value) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _optional_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _optional_load_json(value: Optional[str]) -> Optional[dict]:
    if value is None:
        return None
    return json.loads(value)
