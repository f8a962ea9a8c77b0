from datetime import date, datetime
from typing import Optional, Protocol

from src.core.negotiation.models import (
    BookingRecord,
    NegotiationEventRecord,
    NegotiationRole,
    NotificationDispatchStatus,
    ProposalDeleteOutcome,
    ProposalResponseResult,
    ProposalStatus,
    ScheduleProposalRecord,
)


class ScheduleNegotiationRepository(Protocol):
    def create_proposal(
        self, proposal: ScheduleProposalRecord, event: NegotiationEventRecord
    ) -> ScheduleProposalRecord: ...

    def get_proposal(self, *, proposal_id: int) -> Optional[ScheduleProposalRecord]: ...

    def list_booking_proposals(self, *, booking_id: int) -> list[ScheduleProposalRecord]: ...

    def list_installer_proposals(self, *, installer_id: int) -> list[ScheduleProposalRecord]: ...

    def record_response(
        self,
        *,
        proposal_id: int,
        status: ProposalStatus,
        response_message: Optional[str],
        responded_by: NegotiationRole,
        responded_at: datetime,
        event: NegotiationEventRecord,
    ) -> Optional[ProposalResponseResult]: ...

    def delete_proposal(
        self, *, proposal_id: int, event: NegotiationEventRecord
    ) -> ProposalDeleteOutcome: ...

    def list_events(self, *, booking_id: int) -> list[NegotiationEventRecord]: ...

    def mark_event_dispatch(
        self,
        *,
        event_id: str,
        dispatch_status: NotificationDispatchStatus,
        dispatch_error_json: Optional[dict[str, str]],
    ) -> None: ...


class BookingDirectory(Protocol):
    def get_booking(self, *, booking_id: int) -> Optional[BookingRecord]: ...

    def mark_scheduled(
        self,
        *,
        booking_id: int,
        scheduled_date: date,
        time_slot: Optional[str],
    ) -> None: ...
