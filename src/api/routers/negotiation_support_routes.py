from typing import Annotated, Optional

from fastapi import Depends, Path, status

from src.api.routers import negotiation as shared
from src.api.routers import negotiation_config
from src.core.negotiation import (
    TIME_SLOT_LABELS,
    NegotiationEventTimelineResponse,
    NegotiationSupportabilityConfigResponse,
    ScheduleNegotiationService,
)


@shared.router.get(
    "/schedule-negotiations/supportability/config",
    response_model=NegotiationSupportabilityConfigResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Negotiation Supportability Configuration",
    description=(
        "Returns negotiation runtime configuration and backend initialization status "
        "for operational diagnostics without direct database access."
    ),
)
def get_negotiation_supportability_config() -> NegotiationSupportabilityConfigResponse:
    shared._assert_support_apis_enabled()
    backend_error: Optional[str] = None
    backend_ready = True
    try:
        negotiation_config.build_repository()
    except RuntimeError as exc:
        backend_ready = False
        backend_error = str(exc)

    return NegotiationSupportabilityConfigResponse(
        store_backend=negotiation_config.negotiation_store_backend_name(),
        backend_ready=backend_ready,
        backend_init_error=backend_error,
        support_apis_enabled=negotiation_config.env_flag("NEGOTIATION_SUPPORT_APIS_ENABLED", True),
        reject_elapsed_accept=negotiation_config.env_flag(
            "NEGOTIATION_REJECT_ELAPSED_ACCEPT", True
        ),
        sync_booking_schedule=negotiation_config.env_flag(
            "NEGOTIATION_SYNC_BOOKING_SCHEDULE", True
        ),
        calendar_timezone=negotiation_config.negotiation_calendar_timezone(),
        time_slots=dict(TIME_SLOT_LABELS),
    )


@shared.router.get(
    "/bookings/{booking_id}/negotiation-events",
    response_model=NegotiationEventTimelineResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Negotiation Event Timeline",
    description=(
        "Returns the notification outbox for a booking, including dispatch status and "
        "failure details, for investigation and replay."
    ),
)
def get_negotiation_event_timeline(
    booking_id: Annotated[
        int,
        Path(description="Booking identifier.", examples=[7]),
    ],
    service: Annotated[
        ScheduleNegotiationService,
        Depends(shared.get_negotiation_service),
    ] = None,
) -> NegotiationEventTimelineResponse:
    shared._assert_support_apis_enabled()
    return service.get_event_timeline(booking_id=booking_id)
