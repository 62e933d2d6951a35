"""Domain errors raised by services.

Each error carries the HTTP status the API layer answers with, so route
handlers stay free of translation boilerplate.
"""


class DomainError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailedError(DomainError, ValueError):
    status_code = 400


class AuthenticationError(DomainError):
    status_code = 401


class PermissionDeniedError(DomainError, PermissionError):
    status_code = 403


class NotFoundError(DomainError, LookupError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409


class TooManyAttemptsError(DomainError):
    status_code = 429
