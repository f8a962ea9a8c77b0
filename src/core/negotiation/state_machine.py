from typing import Iterable, Optional

from src.core.negotiation.errors import NegotiationStateConflictError
from src.core.negotiation.models import (
    BookingScheduleState,
    NegotiationRole,
    ProposalStatus,
    ResponseDecision,
    ScheduleProposalRecord,
)

TERMINAL_STATUSES = {"accepted", "declined"}

RESPONSE_TRANSITIONS: dict[tuple[ProposalStatus, ResponseDecision], ProposalStatus] = {
    ("pending", "accept"): "accepted",
    ("pending", "decline"): "declined",
}


def counterpart_role(role: NegotiationRole) -> NegotiationRole:
    return "customer" if role == "installer" else "installer"


def order_most_recent_first(
    proposals: Iterable[ScheduleProposalRecord],
) -> list[ScheduleProposalRecord]:
    # ids are assigned monotonically, so they break created_at ties in creation order
    return sorted(
        proposals,
        key=lambda proposal: (proposal.created_at, proposal.proposal_id or 0),
        reverse=True,
    )


def resolve_response_status(
    *, current_status: ProposalStatus, decision: ResponseDecision
) -> ProposalStatus:
    next_status = RESPONSE_TRANSITIONS.get((current_status, decision))
    if next_status is None:
        raise NegotiationStateConflictError(
            "PROPOSAL_ALREADY_RESOLVED",
            f"proposal is already {current_status}",
            current_status=current_status,
        )
    return next_status


def latest_proposal(
    history: list[ScheduleProposalRecord],
) -> Optional[ScheduleProposalRecord]:
    return history[0] if history else None


def is_protected_tail(history: list[ScheduleProposalRecord], *, proposal_id: int) -> bool:
    """The only remaining proposal of a booking is its auditable tail."""
    return len(history) == 1 and history[0].proposal_id == proposal_id


def active_proposal(history: list[ScheduleProposalRecord]) -> Optional[ScheduleProposalRecord]:
    """Pick the proposal a booking view should surface.

    ``history`` must be ordered most recent first. A latest accepted proposal wins;
    otherwise the newest pending one does, even when newer resolved entries exist.
    """
    latest = latest_proposal(history)
    if latest is None:
        return None
    if latest.status == "accepted":
        return latest
    return next((proposal for proposal in history if proposal.status == "pending"), None)


def confirmed_proposal(
    history: list[ScheduleProposalRecord],
) -> Optional[ScheduleProposalRecord]:
    return next((proposal for proposal in history if proposal.status == "accepted"), None)


def derive_schedule_state(
    history: list[ScheduleProposalRecord],
    *,
    viewer_role: Optional[NegotiationRole],
) -> BookingScheduleState:
    latest = latest_proposal(history)
    if latest is None:
        return "unscheduled"
    if latest.status == "pending":
        if viewer_role is None or viewer_role != latest.proposed_by:
            return "pending_response"
        return "unscheduled"
    if confirmed_proposal(history) is not None:
        return "confirmed"
    return "unscheduled"


def awaiting_response_from(
    history: list[ScheduleProposalRecord],
) -> Optional[NegotiationRole]:
    latest = latest_proposal(history)
    if latest is None or latest.status != "pending":
        return None
    return counterpart_role(latest.proposed_by)
