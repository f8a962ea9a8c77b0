from copy import deepcopy
from datetime import datetime
from itertools import count
from threading import Lock
from typing import Optional

from src.core.negotiation.models import (
    NegotiationEventRecord,
    NegotiationRole,
    NotificationDispatchStatus,
    ProposalDeleteOutcome,
    ProposalResponseResult,
    ProposalStatus,
    ScheduleProposalRecord,
)
from src.core.negotiation.repository import ScheduleNegotiationRepository
from src.core.negotiation.state_machine import is_protected_tail, order_most_recent_first


class InMemoryScheduleNegotiationRepository(ScheduleNegotiationRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._proposal_ids = count(1)
        self._proposals: dict[int, ScheduleProposalRecord] = {}
        self._events: dict[str, NegotiationEventRecord] = {}

    def create_proposal(
        self, proposal: ScheduleProposalRecord, event: NegotiationEventRecord
    ) -> ScheduleProposalRecord:
        with self._lock:
            stored = deepcopy(proposal)
            stored.proposal_id = next(self._proposal_ids)
            stored_event = deepcopy(event)
            stored_event.proposal_id = stored.proposal_id
            self._proposals[stored.proposal_id] = stored
            self._events[stored_event.event_id] = stored_event
            return deepcopy(stored)

    def get_proposal(self, *, proposal_id: int) -> Optional[ScheduleProposalRecord]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            return deepcopy(proposal) if proposal is not None else None

    def list_booking_proposals(self, *, booking_id: int) -> list[ScheduleProposalRecord]:
        with self._lock:
            rows = [row for row in self._proposals.values() if row.booking_id == booking_id]
            return [deepcopy(row) for row in order_most_recent_first(rows)]

    def list_installer_proposals(self, *, installer_id: int) -> list[ScheduleProposalRecord]:
        with self._lock:
            rows = [row for row in self._proposals.values() if row.installer_id == installer_id]
            return [deepcopy(row) for row in order_most_recent_first(rows)]

    def record_response(
        self,
        *,
        proposal_id: int,
        status: ProposalStatus,
        response_message: Optional[str],
        responded_by: NegotiationRole,
        responded_at: datetime,
        event: NegotiationEventRecord,
    ) -> Optional[ProposalResponseResult]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None or proposal.status != "pending":
                return None
            proposal.status = status
            proposal.response_message = response_message
            proposal.responded_by = responded_by
            proposal.responded_at = responded_at
            self._events[event.event_id] = deepcopy(event)
            return ProposalResponseResult(proposal=deepcopy(proposal), event=deepcopy(event))

    def delete_proposal(
        self, *, proposal_id: int, event: NegotiationEventRecord
    ) -> ProposalDeleteOutcome:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                return "NOT_FOUND"
            history = order_most_recent_first(
                row for row in self._proposals.values() if row.booking_id == proposal.booking_id
            )
            if is_protected_tail(history, proposal_id=proposal_id):
                return "LATEST_PROTECTED"
            del self._proposals[proposal_id]
            self._events[event.event_id] = deepcopy(event)
            return "DELETED"

    def list_events(self, *, booking_id: int) -> list[NegotiationEventRecord]:
        with self._lock:
            rows = [row for row in self._events.values() if row.booking_id == booking_id]
        rows = sorted(rows, key=lambda row: row.occurred_at)
        return [deepcopy(row) for row in rows]

    def mark_event_dispatch(
        self,
        *,
        event_id: str,
        dispatch_status: NotificationDispatchStatus,
        dispatch_error_json: Optional[dict[str, str]],
    ) -> None:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                return
            event.dispatch_status = dispatch_status
            event.dispatch_error_json = deepcopy(dispatch_error_json)
