"""Database models."""

from trekbook.models.admin import AuditLog
from trekbook.models.booking import Booking, BookingParticipant
from trekbook.models.user import User

__all__ = [
    # User
    "User",
    # Booking
    "Booking",
    "BookingParticipant",
    # Admin
    "AuditLog",
]
