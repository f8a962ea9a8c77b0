from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

NegotiationRole = Literal["customer", "installer"]
ProposalStatus = Literal["pending", "accepted", "declined"]
ResponseDecision = Literal["accept", "decline"]
BookingScheduleState = Literal["unscheduled", "pending_response", "confirmed"]
NegotiationEventType = Literal["submitted", "accepted", "declined", "deleted"]
NotificationDispatchStatus = Literal["PENDING", "DISPATCHED", "FAILED"]
ProposalDeleteOutcome = Literal["DELETED", "NOT_FOUND", "LATEST_PROTECTED"]

TIME_SLOT_LABELS: Dict[str, str] = {
    "morning": "Morning",
    "afternoon": "Afternoon",
    "evening": "Evening",
    "09:00": "9:00 AM - 11:00 AM",
    "11:00": "11:00 AM - 1:00 PM",
    "13:00": "1:00 PM - 3:00 PM",
    "15:00": "3:00 PM - 5:00 PM",
    "17:00": "5:00 PM - 7:00 PM",
}


class ScheduleProposalSubmitRequest(BaseModel):
    booking_id: int = Field(
        description="Booking the proposal negotiates an installation date for.",
        examples=[7],
    )
    role: NegotiationRole = Field(
        description="Role of the party authoring the proposal.",
        examples=["installer"],
    )
    proposed_date: date = Field(
        description="Proposed installation date. Must be strictly after the submission date.",
        examples=["2026-10-20"],
    )
    proposed_time_slot: Optional[str] = Field(
        default=None,
        description="Optional time-of-day slot. Mutually exclusive with start/end times.",
        examples=["morning"],
    )
    proposed_start_time: Optional[str] = Field(
        default=None,
        description="Optional explicit window start (HH:MM, 24h). Requires proposed_end_time.",
        examples=["10:00"],
    )
    proposed_end_time: Optional[str] = Field(
        default=None,
        description="Optional explicit window end (HH:MM, 24h). Requires proposed_start_time.",
        examples=["12:30"],
    )
    message: Optional[str] = Field(
        default=None,
        description="Optional free-text note to the other party.",
        examples=["I can bring the extra cable cover if needed."],
    )


class ScheduleProposalResponseRequest(BaseModel):
    role: NegotiationRole = Field(
        description="Role of the party responding. Must differ from the proposal author.",
        examples=["customer"],
    )
    decision: ResponseDecision = Field(
        description="Response decision for the pending proposal.",
        examples=["accept"],
    )
    message: Optional[str] = Field(
        default=None,
        description="Response note. Required and non-blank when declining.",
        examples=["Morning works, see you then."],
    )


class ScheduleProposal(BaseModel):
    proposal_id: int = Field(description="Store-assigned proposal identifier.", examples=[12])
    booking_id: int = Field(description="Booking identifier.", examples=[7])
    installer_id: Optional[int] = Field(
        default=None,
        description="Installer assigned to the booking when the proposal was made.",
        examples=[3],
    )
    proposed_date: str = Field(description="Proposed ISO date.", examples=["2026-10-20"])
    proposed_time_slot: Optional[str] = Field(
        default=None, description="Proposed time-of-day slot.", examples=["morning"]
    )
    proposed_time_slot_label: Optional[str] = Field(
        default=None,
        description="Display label for the proposed time slot.",
        examples=["Morning"],
    )
    proposed_start_time: Optional[str] = Field(
        default=None, description="Explicit window start.", examples=["10:00"]
    )
    proposed_end_time: Optional[str] = Field(
        default=None, description="Explicit window end.", examples=["12:30"]
    )
    proposal_message: Optional[str] = Field(
        default=None,
        description="Proposer note.",
        examples=["I can bring the extra cable cover if needed."],
    )
    proposed_by: NegotiationRole = Field(description="Proposal author role.", examples=["installer"])
    status: ProposalStatus = Field(description="Proposal status.", examples=["pending"])
    response_message: Optional[str] = Field(
        default=None, description="Responder note.", examples=["Morning works."]
    )
    responded_by: Optional[NegotiationRole] = Field(
        default=None, description="Responder role once resolved.", examples=["customer"]
    )
    responded_at: Optional[str] = Field(
        default=None,
        description="UTC ISO8601 timestamp of the response.",
        examples=["2026-10-18T10:05:00+00:00"],
    )
    created_at: str = Field(
        description="UTC ISO8601 creation timestamp.",
        examples=["2026-10-18T10:00:00+00:00"],
    )


class ScheduleNegotiationHistoryResponse(BaseModel):
    booking_id: int = Field(description="Booking identifier.", examples=[7])
    proposals: List[ScheduleProposal] = Field(
        description="Proposals for the booking, most recent first.",
        examples=[[]],
    )


class InstallerNegotiationsResponse(BaseModel):
    installer_id: int = Field(description="Installer identifier.", examples=[3])
    proposals: List[ScheduleProposal] = Field(
        description="Proposals across the installer's bookings, most recent first.",
        examples=[[]],
    )


class ConfirmedSchedule(BaseModel):
    proposal_id: int = Field(description="Accepted proposal identifier.", examples=[12])
    scheduled_date: str = Field(description="Confirmed ISO date.", examples=["2026-10-20"])
    time_slot: Optional[str] = Field(default=None, description="Confirmed slot.", examples=["morning"])
    start_time: Optional[str] = Field(default=None, description="Confirmed start.", examples=[None])
    end_time: Optional[str] = Field(default=None, description="Confirmed end.", examples=[None])


class BookingScheduleSummary(BaseModel):
    booking_id: int = Field(description="Booking identifier.", examples=[7])
    viewer_role: Optional[NegotiationRole] = Field(
        default=None,
        description="Role the derived state is computed relative to.",
        examples=["customer"],
    )
    schedule_state: BookingScheduleState = Field(
        description="Derived booking-level negotiation state.", examples=["confirmed"]
    )
    awaiting_response_from: Optional[NegotiationRole] = Field(
        default=None,
        description="Role expected to respond to the latest pending proposal.",
        examples=["customer"],
    )
    confirmed_schedule: Optional[ConfirmedSchedule] = Field(
        default=None,
        description="Most recent accepted proposal, if any.",
        examples=[{"proposal_id": 12, "scheduled_date": "2026-10-20", "time_slot": "morning"}],
    )
    active_proposal: Optional[ScheduleProposal] = Field(
        default=None, description="Active negotiation proposal, if any.", examples=[None]
    )
    proposal_count: int = Field(description="Number of proposals in history.", examples=[1])


class NegotiationEvent(BaseModel):
    event_id: str = Field(description="Outbox event identifier.", examples=["nev_0123456789ab"])
    booking_id: int = Field(description="Booking identifier.", examples=[7])
    proposal_id: int = Field(description="Proposal identifier.", examples=[12])
    event_type: NegotiationEventType = Field(description="Event type.", examples=["submitted"])
    actor_role: NegotiationRole = Field(description="Acting role.", examples=["installer"])
    recipient_role: NegotiationRole = Field(description="Role to notify.", examples=["customer"])
    occurred_at: str = Field(
        description="UTC ISO8601 timestamp.", examples=["2026-10-18T10:00:00+00:00"]
    )
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        description="Event payload snapshot for the notification.",
        examples=[{"proposed_date": "2026-10-20", "proposed_time_slot": "morning"}],
    )
    dispatch_status: NotificationDispatchStatus = Field(
        description="Notification dispatch status.", examples=["DISPATCHED"]
    )
    dispatch_error: Optional[Dict[str, str]] = Field(
        default=None,
        description="Dispatch failure details when dispatch_status is FAILED.",
        examples=[None],
    )


class NegotiationEventTimelineResponse(BaseModel):
    booking_id: int = Field(description="Booking identifier.", examples=[7])
    events: List[NegotiationEvent] = Field(
        description="Outbox events for the booking in occurrence order.", examples=[[]]
    )


class NegotiationSupportabilityConfigResponse(BaseModel):
    store_backend: str = Field(description="Configured store backend.", examples=["IN_MEMORY"])
    backend_ready: bool = Field(
        description="Whether the configured backend initialized.", examples=[True]
    )
    backend_init_error: Optional[str] = Field(
        default=None,
        description="Stable backend initialization error code.",
        examples=["NEGOTIATION_POSTGRES_DSN_REQUIRED"],
    )
    support_apis_enabled: bool = Field(description="Support APIs enabled.", examples=[True])
    reject_elapsed_accept: bool = Field(
        description="Accepting a proposal whose date has elapsed is rejected.", examples=[True]
    )
    sync_booking_schedule: bool = Field(
        description="Accepted schedules are pushed to the booking directory.", examples=[True]
    )
    calendar_timezone: str = Field(
        description="Zone used to determine the current calendar date.", examples=["UTC"]
    )
    time_slots: Dict[str, str] = Field(
        description="Recognized time slots and their labels.",
        examples=[{"morning": "Morning"}],
    )


class BookingRecord(BaseModel):
    booking_id: int = Field(description="Internal booking identifier.", examples=[7])
    installer_id: Optional[int] = Field(
        default=None, description="Internal assigned installer.", examples=[3]
    )
    customer_id: Optional[str] = Field(
        default=None, description="Internal customer reference.", examples=["cust_001"]
    )
    status: str = Field(description="Internal booking status.", examples=["confirmed"])
    scheduled_date: Optional[date] = Field(
        default=None, description="Internal confirmed date.", examples=["2026-10-20"]
    )
    scheduled_time_slot: Optional[str] = Field(
        default=None, description="Internal confirmed slot.", examples=["morning"]
    )


class ScheduleProposalRecord(BaseModel):
    proposal_id: Optional[int] = Field(
        default=None,
        description="Internal identifier. Unset until the store assigns it.",
        examples=[12],
    )
    booking_id: int = Field(description="Internal booking identifier.", examples=[7])
    installer_id: Optional[int] = Field(
        default=None, description="Internal installer identifier.", examples=[3]
    )
    proposed_date: date = Field(description="Internal proposed date.", examples=["2026-10-20"])
    proposed_time_slot: Optional[str] = Field(
        default=None, description="Internal slot.", examples=["morning"]
    )
    proposed_start_time: Optional[str] = Field(
        default=None, description="Internal window start.", examples=["10:00"]
    )
    proposed_end_time: Optional[str] = Field(
        default=None, description="Internal window end.", examples=["12:30"]
    )
    proposal_message: Optional[str] = Field(
        default=None, description="Internal proposer note.", examples=["See you then."]
    )
    proposed_by: NegotiationRole = Field(description="Internal author role.", examples=["installer"])
    status: ProposalStatus = Field(description="Internal status.", examples=["pending"])
    response_message: Optional[str] = Field(
        default=None, description="Internal responder note.", examples=["Works for me."]
    )
    responded_by: Optional[NegotiationRole] = Field(
        default=None, description="Internal responder role.", examples=["customer"]
    )
    responded_at: Optional[datetime] = Field(
        default=None,
        description="Internal response timestamp.",
        examples=["2026-10-18T10:05:00+00:00"],
    )
    created_at: datetime = Field(
        description="Internal creation timestamp.", examples=["2026-10-18T10:00:00+00:00"]
    )


class NegotiationEventRecord(BaseModel):
    event_id: str = Field(description="Internal event identifier.", examples=["nev_001"])
    booking_id: int = Field(description="Internal booking identifier.", examples=[7])
    proposal_id: Optional[int] = Field(
        default=None,
        description="Internal proposal identifier. Bound by the store on submission.",
        examples=[12],
    )
    event_type: NegotiationEventType = Field(
        description="Internal event type.", examples=["submitted"]
    )
    actor_role: NegotiationRole = Field(description="Internal actor role.", examples=["installer"])
    recipient_role: NegotiationRole = Field(
        description="Internal recipient role.", examples=["customer"]
    )
    occurred_at: datetime = Field(
        description="Internal event timestamp.", examples=["2026-10-18T10:00:00+00:00"]
    )
    payload_json: Dict[str, Any] = Field(
        default_factory=dict,
        description="Internal event payload JSON.",
        examples=[{"proposed_date": "2026-10-20"}],
    )
    dispatch_status: NotificationDispatchStatus = Field(
        default="PENDING", description="Internal dispatch status.", examples=["PENDING"]
    )
    dispatch_error_json: Optional[Dict[str, str]] = Field(
        default=None, description="Internal dispatch error JSON.", examples=[None]
    )


class ProposalResponseResult(BaseModel):
    proposal: ScheduleProposalRecord = Field(
        description="Internal proposal after the response was recorded."
    )
    event: NegotiationEventRecord = Field(description="Internal outbox event for the response.")
