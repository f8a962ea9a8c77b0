import logging
from typing import Protocol

from src.core.negotiation.models import NegotiationEventRecord

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def dispatch(self, event: NegotiationEventRecord) -> None: ...


class LoggingNotificationDispatcher:
    """Default dispatcher: one structured log line per negotiation event."""

    def dispatch(self, event: NegotiationEventRecord) -> None:
        logger.info(
            "negotiation.notification.dispatched",
            extra={
                "extra_fields": {
                    "event_id": event.event_id,
                    "event_type": event.event_type,
                    "booking_id": event.booking_id,
                    "proposal_id": event.proposal_id,
                    "recipient_role": event.recipient_role,
                }
            },
        )
