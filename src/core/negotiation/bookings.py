import json
from typing import Optional

from pydantic import ValidationError

from src.core.negotiation.models import BookingRecord


def parse_booking_catalog(catalog_json: Optional[str]) -> dict[int, BookingRecord]:
    """Parse ``{"<booking_id>": {"installer_id": .., "customer_id": .., "status": ..}}``.

    Malformed documents and entries are skipped so a bad seed never blocks startup.
    """
    normalized_json = (catalog_json or "").strip()
    if not normalized_json:
        return {}
    try:
        raw = json.loads(normalized_json)
    except json.JSONDecodeError:
        return {}
    if not isinstance(raw, dict):
        return {}

    catalog: dict[int, BookingRecord] = {}
    for booking_key, definition in raw.items():
        if not isinstance(definition, dict):
            continue
        try:
            booking_id = int(str(booking_key).strip())
        except ValueError:
            continue
        payload = {
            "booking_id": booking_id,
            "installer_id": definition.get("installer_id"),
            "customer_id": definition.get("customer_id"),
            "status": str(definition.get("status", "confirmed")),
        }
        try:
            parsed = BookingRecord.model_validate(payload)
        except ValidationError:
            continue
        catalog[booking_id] = parsed
    return catalog
