"""
User model with secure password storage and a closed role set.
"""

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from venue_booking.db.base import Base, TimestampMixin, StringEnum, new_id
from venue_booking.domain.enums import UserRole


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(StringEnum(UserRole), nullable=False, default=UserRole.USER)
    is_active = Column(Boolean, default=True, nullable=False)

    events = relationship("Event", back_populates="organizer", lazy="raise")
    bookings = relationship("Booking", back_populates="user", foreign_keys="Booking.user_id", lazy="raise")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
