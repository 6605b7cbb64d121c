"""
Domain exceptions raised by services and mapped to HTTP status codes in main.
"""


class CateringOpsError(Exception):
    """Base class for errors that carry a client-facing message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CateringOpsError):
    status_code = 400


class PermissionDeniedError(CateringOpsError):
    status_code = 403


class NotFoundError(CateringOpsError):
    status_code = 404


class ConflictError(CateringOpsError):
    status_code = 409


class UpstreamError(CateringOpsError):
    """An external collaborator (OpenAI) failed; status mirrors what the client should see."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code
