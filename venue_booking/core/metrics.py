"""
Prometheus metrics, served in text format at /metrics.

Label values are kept to small closed sets (outcomes, statuses, operation
names); ids never become labels.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

booking_attempts = Counter(
    "booking_attempts_total",
    "Booking creation attempts",
    ["outcome"],  # success | conflict | error
)

booking_transitions = Counter(
    "booking_status_transitions_total",
    "Booking status changes; from_status is 'new' for created bookings",
    ["from_status", "to_status"],
)

booking_latency = Histogram(
    "booking_operation_latency_seconds",
    "Time spent in booking and event service calls",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

capacity_rejections = Counter(
    "event_capacity_rejections_total",
    "Seat reservations refused because the event was full",
)

counter_sync_failures = Counter(
    "event_counter_sync_failures_total",
    "current_bookings updates that failed after the booking itself was written",
    ["operation"],
)

notifications_published = Counter(
    "notifications_published_total",
    "Booking notifications by outcome",
    ["kind", "result"],  # published | skipped | failed
)


def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_booking_attempt(outcome: str) -> None:
    booking_attempts.labels(outcome=outcome).inc()


def record_transition(from_status: str, to_status: str) -> None:
    booking_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_counter_sync_failure(operation: str) -> None:
    counter_sync_failures.labels(operation=operation).inc()


def record_notification(kind: str, result: str) -> None:
    notifications_published.labels(kind=kind, result=result).inc()
