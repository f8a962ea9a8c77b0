from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status

from src.api.routers import negotiation_config
from src.api.routers.negotiation_config import env_flag
from src.api.routers.negotiation_http_errors import raise_negotiation_http_exception
from src.core.negotiation import (
    BookingScheduleSummary,
    InstallerNegotiationsResponse,
    NegotiationError,
    ScheduleNegotiationHistoryResponse,
    ScheduleNegotiationService,
    ScheduleProposal,
    ScheduleProposalResponseRequest,
    ScheduleProposalSubmitRequest,
)
from src.core.negotiation.models import NegotiationRole

router = APIRouter(tags=["Schedule Negotiation"])

_SERVICE: Optional[ScheduleNegotiationService] = None


def get_negotiation_service() -> ScheduleNegotiationService:
    global _SERVICE
    if _SERVICE is None:
        try:
            repository = negotiation_config.build_repository()
            bookings = negotiation_config.build_booking_directory()
            _SERVICE = ScheduleNegotiationService(
                repository=repository,
                bookings=bookings,
                calendar_timezone=negotiation_config.negotiation_calendar_timezone(),
                reject_elapsed_accept=env_flag("NEGOTIATION_REJECT_ELAPSED_ACCEPT", True),
                sync_booking_schedule=env_flag("NEGOTIATION_SYNC_BOOKING_SCHEDULE", True),
            )
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"code": str(exc), "message": "negotiation service is unavailable"},
            ) from exc
    return _SERVICE


def reset_negotiation_service_for_tests() -> None:
    global _SERVICE
    _SERVICE = None


def _assert_support_apis_enabled() -> None:
    if not env_flag("NEGOTIATION_SUPPORT_APIS_ENABLED", True):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="NEGOTIATION_SUPPORT_APIS_DISABLED",
        )


ProposalIdPath = Annotated[
    int,
    Path(description="Store-assigned schedule proposal identifier.", examples=[12]),
]
BookingIdPath = Annotated[
    int,
    Path(description="Booking identifier.", examples=[7]),
]


@router.post(
    "/schedule-negotiations",
    response_model=ScheduleProposal,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Schedule Proposal",
    description=(
        "Validates and records a new pending installation-date proposal for a booking. "
        "Older proposals are left untouched; the newest entry drives the negotiation view."
    ),
)
def submit_schedule_proposal(
    payload: ScheduleProposalSubmitRequest,
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> ScheduleProposal:
    try:
        return service.submit_proposal(payload=payload)
    except NegotiationError as exc:
        raise_negotiation_http_exception(exc)


@router.patch(
    "/schedule-negotiations/{proposal_id}",
    response_model=ScheduleProposal,
    status_code=status.HTTP_200_OK,
    summary="Respond to Schedule Proposal",
    description=(
        "Accepts or declines a pending proposal on behalf of the counterparty. "
        "Declining requires a message. Resolved proposals return 409 with their current status."
    ),
)
def respond_to_schedule_proposal(
    proposal_id: ProposalIdPath,
    payload: ScheduleProposalResponseRequest,
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> ScheduleProposal:
    try:
        return service.respond_to_proposal(proposal_id=proposal_id, payload=payload)
    except NegotiationError as exc:
        raise_negotiation_http_exception(exc)


@router.delete(
    "/schedule-negotiations/{proposal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Schedule Proposal",
    description=(
        "Hard-deletes a proposal from the booking history. "
        "The last remaining entry of a negotiation is protected and returns 409."
    ),
)
def delete_schedule_proposal(
    proposal_id: ProposalIdPath,
    requested_by: Annotated[
        NegotiationRole,
        Query(description="Role of the party requesting deletion.", examples=["installer"]),
    ],
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> Response:
    try:
        service.delete_proposal(proposal_id=proposal_id, requested_by=requested_by)
    except NegotiationError as exc:
        raise_negotiation_http_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/schedule-negotiations/{proposal_id}",
    response_model=ScheduleProposal,
    status_code=status.HTTP_200_OK,
    summary="Get Schedule Proposal",
    description="Returns a single schedule proposal by identifier.",
)
def get_schedule_proposal(
    proposal_id: ProposalIdPath,
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> ScheduleProposal:
    try:
        return service.get_proposal(proposal_id=proposal_id)
    except NegotiationError as exc:
        raise_negotiation_http_exception(exc)


@router.get(
    "/bookings/{booking_id}/schedule-negotiations",
    response_model=ScheduleNegotiationHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Booking Negotiation History",
    description="Returns every proposal for the booking, most recent first.",
)
def get_booking_negotiation_history(
    booking_id: BookingIdPath,
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> ScheduleNegotiationHistoryResponse:
    return service.get_history(booking_id=booking_id)


@router.get(
    "/bookings/{booking_id}/active-negotiation",
    response_model=Optional[ScheduleProposal],
    status_code=status.HTTP_200_OK,
    summary="Get Active Negotiation",
    description=(
        "Returns the latest proposal when it is accepted, otherwise the newest pending "
        "proposal, otherwise null."
    ),
)
def get_active_negotiation(
    booking_id: BookingIdPath,
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> Optional[ScheduleProposal]:
    return service.get_active_negotiation(booking_id=booking_id)


@router.get(
    "/bookings/{booking_id}/schedule-summary",
    response_model=BookingScheduleSummary,
    status_code=status.HTTP_200_OK,
    summary="Get Booking Schedule Summary",
    description=(
        "Returns the derived booking-level schedule state (unscheduled, pending_response, "
        "confirmed) relative to an optional viewer role, with the confirmed schedule."
    ),
)
def get_booking_schedule_summary(
    booking_id: BookingIdPath,
    viewer_role: Annotated[
        Optional[NegotiationRole],
        Query(
            description="Role asking whether anything is pending for it.",
            examples=["customer"],
        ),
    ] = None,
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> BookingScheduleSummary:
    return service.get_booking_schedule(booking_id=booking_id, viewer_role=viewer_role)


@router.get(
    "/installers/{installer_id}/schedule-negotiations",
    response_model=InstallerNegotiationsResponse,
    status_code=status.HTTP_200_OK,
    summary="List Installer Negotiations",
    description="Returns proposals across all bookings assigned to the installer.",
)
def list_installer_negotiations(
    installer_id: Annotated[
        int,
        Path(description="Installer identifier.", examples=[3]),
    ],
    service: Annotated[ScheduleNegotiationService, Depends(get_negotiation_service)] = None,
) -> InstallerNegotiationsResponse:
    return service.list_installer_negotiations(installer_id=installer_id)
