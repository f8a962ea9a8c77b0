from datetime import date
from threading import Lock
from typing import Optional

from src.core.negotiation.bookings import parse_booking_catalog
from src.core.negotiation.models import BookingRecord
from src.core.negotiation.validation import CANCELLED_BOOKING_STATUS


class EnvJsonBookingDirectory:
    def __init__(self, *, catalog_json: Optional[str]) -> None:
        self._lock = Lock()
        self._bookings = parse_booking_catalog(catalog_json)

    def get_booking(self, *, booking_id: int) -> Optional[BookingRecord]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return booking.model_copy() if booking is not None else None

    def upsert_booking(self, booking: BookingRecord) -> None:
        with self._lock:
            self._bookings[booking.booking_id] = booking.model_copy()

    def mark_scheduled(
        self,
        *,
        booking_id: int,
        scheduled_date: date,
        time_slot: Optional[str],
    ) -> None:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None or booking.status == CANCELLED_BOOKING_STATUS:
                return
            booking.status = "scheduled"
            booking.scheduled_date = scheduled_date
            booking.scheduled_time_slot = time_slot
