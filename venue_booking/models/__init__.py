from venue_booking.models.user import User
from venue_booking.models.event import Event
from venue_booking.models.booking import Booking

__all__ = ["User", "Event", "Booking"]
