from __future__ import annotations


class AppError(Exception):
    """
    Base class for errors that map onto an HTTP response.

    Subclasses pin the status code; the message is returned to the client as
    {"error": message}, so it must never carry backend details.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(AppError):
    """Malformed or out-of-range client input, including invalid ids."""

    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(AppError):
    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class StorageError(AppError):
    """The persistence layer reported a failure."""

    status_code = 500
