"""
Fire-and-forget booking notifications.

Messages are published as JSON on a Redis pub/sub channel for the mailer to
consume. Publishing runs as a background task after the response has been
sent; a failure here never affects the booking that triggered it.
"""

import json
from datetime import datetime, timezone

import redis.asyncio as redis

from venue_booking.core.config import get_settings
from venue_booking.core.logging import get_logger
from venue_booking.core.metrics import record_notification
from venue_booking.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

BOOKING_CREATED = "booking.created"
BOOKING_CONFIRMED = "booking.confirmed"
BOOKING_CANCELLED = "booking.cancelled"


def booking_payload(booking) -> dict:
    return {
        "booking_id": booking.id,
        "reference_number": booking.reference_number,
        "event_id": booking.event_id,
        "event_name": booking.event_name,
        "user_id": booking.user_id,
        "email": booking.email,
        "status": getattr(booking.status, "value", booking.status),
    }


async def notify(kind: str, payload: dict) -> bool:
    """Publish one notification. Returns True when handed to the broker."""
    client = await get_redis()
    if client is None:
        logger.debug("notification_skipped", kind=kind, reason="redis_disabled")
        record_notification(kind, "skipped")
        return False

    message = json.dumps(
        {"kind": kind, "sent_at": datetime.now(timezone.utc).isoformat(), **payload},
        default=str,
    )
    try:
        receivers = await client.publish(settings.NOTIFICATION_CHANNEL, message)
    except redis.RedisError as e:
        logger.error("notification_failed", kind=kind, error=str(e), **payload)
        record_notification(kind, "failed")
        return False

    logger.info("notification_published", kind=kind, receivers=receivers, booking_id=payload.get("booking_id"))
    record_notification(kind, "published")
    return True
