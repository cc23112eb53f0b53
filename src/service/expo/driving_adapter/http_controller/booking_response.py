"""Map coordinator results onto HTTP errors (the only place a BookingError becomes an exception)."""

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import (
    ConflictError,
    CustomBaseError,
    DomainError,
    NotFoundError,
    ServiceBusyError,
)
from src.service.expo.app.dto.booking_result import BookingError, BookingResult


def to_http_error(error: BookingError) -> CustomBaseError:
    if error.is_retryable:
        return ServiceBusyError(
            error.message, retry_after_seconds=settings.LEDGER_BUSY_RETRY_AFTER_SECONDS
        )
    match error.status_code:
        case 404:
            return NotFoundError(error.message)
        case 409:
            return ConflictError(error.message)
        case _:
            return DomainError(error.message, error.status_code)


def unwrap(result: BookingResult | BookingError) -> BookingResult:
    if isinstance(result, BookingError):
        raise to_http_error(result)
    return result
