"""Exception hierarchy shared by the ingestion, store and backend layers."""

from __future__ import annotations


class GuardianError(Exception):
    """Base exception for all Compliance Guardian errors."""


class InputValidationError(GuardianError, ValueError):
    """Raised when a request is rejected before any work is attempted."""


class IngestionError(GuardianError):
    """Raised when an uploaded file cannot be parsed."""

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"Failed to parse {filename}: {reason}")
        self.filename = filename
        self.reason = reason


class IngestionBusyError(GuardianError):
    """Raised when a batch is submitted while another one is in flight."""

    def __init__(self, message: str = "Another upload is already being processed") -> None:
        super().__init__(message)


class RemoteServiceError(GuardianError):
    """Raised when the reasoning service fails or returns an unusable response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GuardianError):
    """Raised on wrong admin credentials or a missing admin session."""
