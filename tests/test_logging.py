"""
Tests for structured log output.
"""

import json
import logging

import structlog

from venue_booking.core.config import Settings
from venue_booking.core.logging import bind_request_context, get_logger, setup_logging


def test_json_lines_carry_request_context(capsys):
    setup_logging(Settings(ENVIRONMENT="test", LOG_JSON=True, REDIS_ENABLED=False))
    try:
        bind_request_context(request_id="abc123", method="POST", path="/api/v1/bookings")
        get_logger("tests.logging").info("booking_created", booking_id="b1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "booking_created"
        assert entry["booking_id"] == "b1"
        assert entry["request_id"] == "abc123"
        assert entry["service"] == "Venue Booking API"
        assert entry["environment"] == "test"
        assert entry["level"] == "info"
    finally:
        structlog.contextvars.clear_contextvars()
        root = logging.getLogger()
        root.handlers = [
            h for h in root.handlers if not isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
        ]
        structlog.reset_defaults()
