from __future__ import annotations


class QuoteSyncError(Exception):
    pass


class ValidationError(QuoteSyncError, ValueError):
    pass


class StorageError(QuoteSyncError):
    pass


class GatewayError(QuoteSyncError):
    """Remote transport or status failure, returned by the gateway rather than raised."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        message = super().__str__()
        if self.status is None:
            return message
        return f"{message} ({self.status})"
