from src.core.negotiation.errors import (
    NegotiationError,
    NegotiationNotFoundError,
    NegotiationStateConflictError,
    NegotiationValidationError,
)
from src.core.negotiation.models import (
    TIME_SLOT_LABELS,
    BookingRecord,
    BookingScheduleSummary,
    InstallerNegotiationsResponse,
    NegotiationEvent,
    NegotiationEventTimelineResponse,
    NegotiationSupportabilityConfigResponse,
    ScheduleNegotiationHistoryResponse,
    ScheduleProposal,
    ScheduleProposalResponseRequest,
    ScheduleProposalSubmitRequest,
)
from src.core.negotiation.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
)
from src.core.negotiation.repository import BookingDirectory, ScheduleNegotiationRepository
from src.core.negotiation.service import ScheduleNegotiationService

__all__ = [
    "TIME_SLOT_LABELS",
    "BookingDirectory",
    "BookingRecord",
    "BookingScheduleSummary",
    "InstallerNegotiationsResponse",
    "LoggingNotificationDispatcher",
    "NegotiationError",
    "NegotiationEvent",
    "NegotiationEventTimelineResponse",
    "NegotiationNotFoundError",
    "NegotiationStateConflictError",
    "NegotiationSupportabilityConfigResponse",
    "NegotiationValidationError",
    "NotificationDispatcher",
    "ScheduleNegotiationHistoryResponse",
    "ScheduleNegotiationRepository",
    "ScheduleNegotiationService",
    "ScheduleProposal",
    "ScheduleProposalResponseRequest",
    "ScheduleProposalSubmitRequest",
]
