import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from src.core.negotiation.errors import (
    NegotiationNotFoundError,
    NegotiationStateConflictError,
    NegotiationValidationError,
)
from src.core.negotiation.models import (
    TIME_SLOT_LABELS,
    BookingScheduleSummary,
    ConfirmedSchedule,
    InstallerNegotiationsResponse,
    NegotiationEvent,
    NegotiationEventRecord,
    NegotiationEventTimelineResponse,
    NegotiationEventType,
    NegotiationRole,
    ScheduleNegotiationHistoryResponse,
    ScheduleProposal,
    ScheduleProposalRecord,
    ScheduleProposalResponseRequest,
    ScheduleProposalSubmitRequest,
)
from src.core.negotiation.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
)
from src.core.negotiation.repository import BookingDirectory, ScheduleNegotiationRepository
from src.core.negotiation.state_machine import (
    active_proposal,
    awaiting_response_from,
    confirmed_proposal,
    counterpart_role,
    derive_schedule_state,
    resolve_response_status,
)
from src.core.negotiation.validation import (
    calendar_today,
    normalize_optional_text,
    resolve_calendar_zone,
    validate_booking,
    validate_decline_reason,
    validate_proposal_terms,
)

logger = logging.getLogger(__name__)


class ScheduleNegotiationService:
    def __init__(
        self,
        *,
        repository: ScheduleNegotiationRepository,
        bookings: BookingDirectory,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        calendar_timezone: str = "UTC",
        reject_elapsed_accept: bool = True,
        sync_booking_schedule: bool = True,
    ) -> None:
        self._repository = repository
        self._bookings = bookings
        self._dispatcher = dispatcher or LoggingNotificationDispatcher()
        self._clock = clock or _utc_now
        self._calendar_zone = resolve_calendar_zone(calendar_timezone)
        self._reject_elapsed_accept = reject_elapsed_accept
        self._sync_booking_schedule = sync_booking_schedule

    def submit_proposal(self, *, payload: ScheduleProposalSubmitRequest) -> ScheduleProposal:
        now = self._clock()
        validate_proposal_terms(payload, today=self._today(now))
        booking = validate_booking(
            booking=self._bookings.get_booking(booking_id=payload.booking_id),
            booking_id=payload.booking_id,
        )

        proposal = ScheduleProposalRecord(
            booking_id=booking.booking_id,
            installer_id=booking.installer_id,
            proposed_date=payload.proposed_date,
            proposed_time_slot=normalize_optional_text(payload.proposed_time_slot),
            proposed_start_time=normalize_optional_text(payload.proposed_start_time),
            proposed_end_time=normalize_optional_text(payload.proposed_end_time),
            proposal_message=normalize_optional_text(payload.message),
            proposed_by=payload.role,
            status="pending",
            created_at=now,
        )
        event = self._build_event(
            proposal=proposal,
            event_type="submitted",
            actor_role=payload.role,
            recipient_role=counterpart_role(payload.role),
            occurred_at=now,
        )
        created = self._repository.create_proposal(proposal, event)
        event.proposal_id = created.proposal_id

        logger.info(
            "negotiation.proposal.submitted",
            extra={
                "extra_fields": {
                    "booking_id": created.booking_id,
                    "proposal_id": created.proposal_id,
                    "proposed_by": created.proposed_by,
                }
            },
        )
        self._dispatch(event)
        return self._to_proposal(created)

    def respond_to_proposal(
        self,
        *,
        proposal_id: int,
        payload: ScheduleProposalResponseRequest,
    ) -> ScheduleProposal:
        validate_decline_reason(decision=payload.decision, message=payload.message)
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise NegotiationNotFoundError(
                "PROPOSAL_NOT_FOUND", f"proposal {proposal_id} does not exist"
            )
        next_status = resolve_response_status(
            current_status=proposal.status, decision=payload.decision
        )
        if payload.role == proposal.proposed_by:
            raise NegotiationValidationError(
                "RESPONDER_IS_PROPOSER",
                "only the other party can respond to a proposal",
                field="role",
            )
        now = self._clock()
        if (
            payload.decision == "accept"
            and self._reject_elapsed_accept
            and proposal.proposed_date <= self._today(now)
        ):
            raise NegotiationValidationError(
                "PROPOSAL_DATE_ELAPSED",
                "the proposed date is no longer in the future; submit a new proposal",
                field="proposed_date",
            )

        event = self._build_event(
            proposal=proposal,
            event_type=next_status,
            actor_role=payload.role,
            recipient_role=proposal.proposed_by,
            occurred_at=now,
        )
        result = self._repository.record_response(
            proposal_id=proposal_id,
            status=next_status,
            response_message=normalize_optional_text(payload.message),
            responded_by=payload.role,
            responded_at=now,
            event=event,
        )
        if result is None:
            current = self._repository.get_proposal(proposal_id=proposal_id)
            if current is None:
                raise NegotiationNotFoundError(
                    "PROPOSAL_NOT_FOUND", f"proposal {proposal_id} does not exist"
                )
            raise NegotiationStateConflictError(
                "PROPOSAL_ALREADY_RESOLVED",
                f"proposal is already {current.status}",
                current_status=current.status,
            )

        updated = result.proposal
        if updated.status == "accepted" and self._sync_booking_schedule:
            self._bookings.mark_scheduled(
                booking_id=updated.booking_id,
                scheduled_date=updated.proposed_date,
                time_slot=updated.proposed_time_slot,
            )
        logger.info(
            "negotiation.proposal.responded",
            extra={
                "extra_fields": {
                    "booking_id": updated.booking_id,
                    "proposal_id": updated.proposal_id,
                    "status": updated.status,
                    "responded_by": updated.responded_by,
                }
            },
        )
        self._dispatch(result.event)
        return self._to_proposal(updated)

    def delete_proposal(self, *, proposal_id: int, requested_by: NegotiationRole) -> None:
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise NegotiationNotFoundError(
                "PROPOSAL_NOT_FOUND", f"proposal {proposal_id} does not exist"
            )
        event = self._build_event(
            proposal=proposal,
            event_type="deleted",
            actor_role=requested_by,
            recipient_role=counterpart_role(requested_by),
            occurred_at=self._clock(),
        )
        outcome = self._repository.delete_proposal(proposal_id=proposal_id, event=event)
        if outcome == "NOT_FOUND":
            raise NegotiationNotFoundError(
                "PROPOSAL_NOT_FOUND", f"proposal {proposal_id} does not exist"
            )
        if outcome == "LATEST_PROTECTED":
            raise NegotiationStateConflictError(
                "PROPOSAL_LATEST_ENTRY_PROTECTED",
                "the latest remaining entry of a negotiation cannot be deleted",
                current_status=proposal.status,
            )

        logger.info(
            "negotiation.proposal.deleted",
            extra={
                "extra_fields": {
                    "booking_id": proposal.booking_id,
                    "proposal_id": proposal_id,
                    "requested_by": requested_by,
                }
            },
        )
        self._dispatch(event)

    def get_proposal(self, *, proposal_id: int) -> ScheduleProposal:
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise NegotiationNotFoundError(
                "PROPOSAL_NOT_FOUND", f"proposal {proposal_id} does not exist"
            )
        return self._to_proposal(proposal)

    def get_history(self, *, booking_id: int) -> ScheduleNegotiationHistoryResponse:
        history = self._repository.list_booking_proposals(booking_id=booking_id)
        return ScheduleNegotiationHistoryResponse(
            booking_id=booking_id,
            proposals=[self._to_proposal(row) for row in history],
        )

    def get_active_negotiation(self, *, booking_id: int) -> Optional[ScheduleProposal]:
        history = self._repository.list_booking_proposals(booking_id=booking_id)
        active = active_proposal(history)
        return self._to_proposal(active) if active is not None else None

    def get_booking_schedule(
        self,
        *,
        booking_id: int,
        viewer_role: Optional[NegotiationRole] = None,
    ) -> BookingScheduleSummary:
        history = self._repository.list_booking_proposals(booking_id=booking_id)
        confirmed = confirmed_proposal(history)
        active = active_proposal(history)
        return BookingScheduleSummary(
            booking_id=booking_id,
            viewer_role=viewer_role,
            schedule_state=derive_schedule_state(history, viewer_role=viewer_role),
            awaiting_response_from=awaiting_response_from(history),
            confirmed_schedule=(
                self._to_confirmed_schedule(confirmed) if confirmed is not None else None
            ),
            active_proposal=self._to_proposal(active) if active is not None else None,
            proposal_count=len(history),
        )

    def list_installer_negotiations(self, *, installer_id: int) -> InstallerNegotiationsResponse:
        rows = self._repository.list_installer_proposals(installer_id=installer_id)
        return InstallerNegotiationsResponse(
            installer_id=installer_id,
            proposals=[self._to_proposal(row) for row in rows],
        )

    def get_event_timeline(self, *, booking_id: int) -> NegotiationEventTimelineResponse:
        events = self._repository.list_events(booking_id=booking_id)
        return NegotiationEventTimelineResponse(
            booking_id=booking_id,
            events=[self._to_event(event) for event in events],
        )

    def _dispatch(self, event: NegotiationEventRecord) -> None:
        try:
            self._dispatcher.dispatch(event)
        except Exception as exc:
            logger.exception(
                "Negotiation notification dispatch failed. EventID=%s", event.event_id
            )
            self._repository.mark_event_dispatch(
                event_id=event.event_id,
                dispatch_status="FAILED",
                dispatch_error_json={"code": type(exc).__name__, "message": str(exc)},
            )
            return
        self._repository.mark_event_dispatch(
            event_id=event.event_id,
            dispatch_status="DISPATCHED",
            dispatch_error_json=None,
        )

    def _today(self, now: datetime) -> date:
        return calendar_today(now=now, zone=self._calendar_zone)

    def _build_event(
        self,
        *,
        proposal: ScheduleProposalRecord,
        event_type: NegotiationEventType,
        actor_role: NegotiationRole,
        recipient_role: NegotiationRole,
        occurred_at: datetime,
    ) -> NegotiationEventRecord:
        return NegotiationEventRecord(
            event_id=f"nev_{uuid.uuid4().hex[:12]}",
            booking_id=proposal.booking_id,
            proposal_id=proposal.proposal_id,
            event_type=event_type,
            actor_role=actor_role,
            recipient_role=recipient_role,
            occurred_at=occurred_at,
            payload_json=_event_payload(proposal),
        )

    def _to_proposal(self, proposal: ScheduleProposalRecord) -> ScheduleProposal:
        return ScheduleProposal(
            proposal_id=proposal.proposal_id,
            booking_id=proposal.booking_id,
            installer_id=proposal.installer_id,
            proposed_date=proposal.proposed_date.isoformat(),
            proposed_time_slot=proposal.proposed_time_slot,
            proposed_time_slot_label=TIME_SLOT_LABELS.get(proposal.proposed_time_slot or ""),
            proposed_start_time=proposal.proposed_start_time,
            proposed_end_time=proposal.proposed_end_time,
            proposal_message=proposal.proposal_message,
            proposed_by=proposal.proposed_by,
            status=proposal.status,
            response_message=proposal.response_message,
            responded_by=proposal.responded_by,
            responded_at=(
                proposal.responded_at.isoformat() if proposal.responded_at is not None else None
            ),
            created_at=proposal.created_at.isoformat(),
        )

    def _to_confirmed_schedule(self, proposal: ScheduleProposalRecord) -> ConfirmedSchedule:
        return ConfirmedSchedule(
            proposal_id=proposal.proposal_id,
            scheduled_date=proposal.proposed_date.isoformat(),
            time_slot=proposal.proposed_time_slot,
            start_time=proposal.proposed_start_time,
            end_time=proposal.proposed_end_time,
        )

    def _to_event(self, event: NegotiationEventRecord) -> NegotiationEvent:
        return NegotiationEvent(
            event_id=event.event_id,
            booking_id=event.booking_id,
            proposal_id=event.proposal_id,
            event_type=event.event_type,
            actor_role=event.actor_role,
            recipient_role=event.recipient_role,
            occurred_at=event.occurred_at.isoformat(),
            payload=event.payload_json,
            dispatch_status=event.dispatch_status,
            dispatch_error=event.dispatch_error_json,
        )


def _event_payload(proposal: ScheduleProposalRecord) -> dict[str, Any]:
    return {
        "installer_id": proposal.installer_id,
        "proposed_by": proposal.proposed_by,
        "proposed_date": proposal.proposed_date.isoformat(),
        "proposed_time_slot": proposal.proposed_time_slot,
        "proposed_start_time": proposal.proposed_start_time,
        "proposed_end_time": proposal.proposed_end_time,
    }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
