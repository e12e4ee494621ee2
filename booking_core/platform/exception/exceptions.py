class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ValidationError(DomainError):
    """Invalid input; raised before anything is appended to the edit log."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 422)


class BusinessRuleViolation(DomainError):
    """Rule broken by the folded state; detected lazily on read."""

    def __init__(self, message: str, violations: tuple[str, ...] = ()) -> None:
        super().__init__(message, 422)
        self.violations = violations or (message,)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    """Server baseline moved since the snapshot was loaded. Terminal for the aggregate."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class TransientError(CustomBaseError):
    """Network or timeout failure during submission. Safe to retry verbatim."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 503)
