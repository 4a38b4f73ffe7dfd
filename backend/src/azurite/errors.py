"""Domain errors raised by services and rendered by the exception handlers in ``main``."""


class AzuriteError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(AzuriteError):
    status_code = 400


class AuthenticationError(AzuriteError):
    status_code = 401


class PermissionDeniedError(AzuriteError):
    status_code = 403


class BannedError(PermissionDeniedError):
    pass


class NotFoundError(AzuriteError):
    status_code = 404


class ConflictError(AzuriteError):
    status_code = 409
