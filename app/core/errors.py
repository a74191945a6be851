from typing import Optional


class ObjectFinderError(Exception):
    """Base for every failure a request flow can end in."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ObjectFinderError):
    """Caller input is structurally invalid. Raised before any remote call."""

    kind = "validation"


class RemoteServiceError(ObjectFinderError):
    """The remote vision or thumbnail service failed or answered unusably.

    `status` is the HTTP status when the service answered at all. `kind`
    separates sub-cases for logs (`http_error`, `transport_error`,
    `malformed_response`, `empty_response`).
    """

    def __init__(self, message: str, status: Optional[int] = None, kind: str = "http_error"):
        super().__init__(message)
        self.status = status
        self.kind = kind

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.status}: {self.message}"
        return self.message


class TransportError(ObjectFinderError):
    """Local I/O failed while staging an uploaded file."""

    kind = "transport"
