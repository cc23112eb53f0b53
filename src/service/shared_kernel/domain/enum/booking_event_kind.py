"""Booking Event Kind Enum"""

from enum import StrEnum


class BookingEventKind(StrEnum):
    BOOKED = 'booked'
    RELEASED = 'released'
    WAITLISTED = 'waitlisted'
    PROMOTED = 'promoted'
    CANCELLED = 'cancelled'
