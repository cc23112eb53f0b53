class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(
        self, message: str, status_code: int = 500, headers: dict[str, str] | None = None
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.headers = headers
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class AuthenticationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 401)


class ForbiddenError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 403)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class ServiceBusyError(CustomBaseError):
    def __init__(self, message: str, retry_after_seconds: int = 1) -> None:
        super().__init__(message, 503, headers={'Retry-After': str(retry_after_seconds)})


class ResourceBusyError(Exception):
    """Raised when a resource critical section cannot be entered in time (retryable)."""

    def __init__(self, key: str, timeout: float) -> None:
        self.key = key
        self.timeout = timeout
        super().__init__(f'Resource {key} is busy (waited {timeout}s)')
