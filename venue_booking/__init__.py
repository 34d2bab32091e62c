"""Venue booking API: events, bookings and capacity accounting."""

__version__ = "1.0.0"
