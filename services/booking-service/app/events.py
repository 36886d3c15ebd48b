import json
import uuid
from datetime import datetime, timezone

BOOKING_CREATED = "booking.created"
BOOKING_ASSIGNED = "booking.assigned"
BOOKING_STATUS_CHANGED = "booking.status_changed"
BOOKING_IMAGES_UPDATED = "booking.images_updated"
BOOKING_RATED = "booking.rated"
PAYMENT_CONFIRMED = "payment.confirmed"


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def booking_snapshot(booking, **extra) -> dict:
    data = {
        "booking_id": booking.booking_id,
        "customer_id": booking.customer_id,
        "technician_id": booking.technician_id,
        "status": booking.status,
        "payment_method": booking.payment_method,
        "payment_status": booking.payment_status,
        "payment_received_by": booking.payment_received_by,
    }
    data.update(extra)
    return data


def to_json(event: dict) -> str:
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)
