"""Application error taxonomy.

Each error carries the HTTP status and the message that is safe to show the
caller. The portal's exception handlers turn them into the JSON envelope.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        if message:
            self.public_message = message


class ValidationError(AppError):
    """Bad input shape or range. Carries every violation, not just the first."""

    status_code = 400
    public_message = "Validation failed"

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or None)


class AuthError(AppError):
    status_code = 401
    public_message = "Unauthorized"


class NotFoundError(AppError):
    """Row absent, or present but owned by someone else."""

    status_code = 404
    public_message = "Not found"


class UpstreamError(AppError):
    """A third-party API failed and no fallback was available."""

    status_code = 502
    public_message = "Upstream service unavailable"


class StorageError(AppError):
    """Backing-store failure. The detail stays in the logs."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, detail: str = "") -> None:
        super().__init__()
        self.detail = detail
