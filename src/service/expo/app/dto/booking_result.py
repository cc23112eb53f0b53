"""
Booking Coordinator results

Expected outcomes travel as values, never as exceptions: a request either
yields a ``BookingResult`` (committed transition plus the events it emitted)
or a ``BookingError`` the caller can show verbatim.
"""

from enum import StrEnum
from typing import Optional, Tuple

import attrs

from src.service.expo.domain.domain_event.booking_event import BookingEvent
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource


class BookingErrorCode(StrEnum):
    # Capacity errors, straight from the ledger
    ALREADY_HOLDING = 'already_holding'
    ALREADY_WAITLISTED = 'already_waitlisted'
    AT_CAPACITY = 'at_capacity'
    SHARING_NOT_ALLOWED = 'sharing_not_allowed'
    CLOSED = 'closed'
    # Request-level rules
    NOT_FOUND = 'not_found'
    NOT_BOOKABLE = 'not_bookable'
    NOT_ELIGIBLE = 'not_eligible'
    NOT_HOLDING = 'not_holding'
    # Transient, safe to retry
    BUSY = 'busy'


CAPACITY_ERROR_CODES = frozenset(
    {
        BookingErrorCode.ALREADY_HOLDING,
        BookingErrorCode.ALREADY_WAITLISTED,
        BookingErrorCode.AT_CAPACITY,
        BookingErrorCode.SHARING_NOT_ALLOWED,
        BookingErrorCode.CLOSED,
    }
)

_STATUS_CODES = {
    BookingErrorCode.NOT_FOUND: 404,
    BookingErrorCode.NOT_BOOKABLE: 400,
    BookingErrorCode.NOT_ELIGIBLE: 400,
    BookingErrorCode.NOT_HOLDING: 400,
    BookingErrorCode.BUSY: 503,
}


@attrs.frozen
class BookingError:
    code: BookingErrorCode
    message: str

    @property
    def status_code(self) -> int:
        return 409 if self.code in CAPACITY_ERROR_CODES else _STATUS_CODES[self.code]

    @property
    def is_retryable(self) -> bool:
        return self.code == BookingErrorCode.BUSY


@attrs.frozen
class BookingResult:
    message: str
    resource: BookableResource
    events: Tuple[BookingEvent, ...] = attrs.field(converter=tuple)

    @property
    def event(self) -> Optional[BookingEvent]:
        """The event describing the caller's own transition."""
        return self.events[0] if self.events else None
