"""Error taxonomy shared by the stores, the coordinator and the dispatcher."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a caller can branch on."""

    VALIDATION = "validation"
    STORE_UNAVAILABLE = "store_unavailable"
    NOT_FOUND = "not_found"
    PROVIDER = "provider"
    CONFLICT = "conflict"
    CONFIGURATION = "configuration"


class EmailerError(Exception):
    """Base class for all emailer errors."""

    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EmailerError):
    """Local precondition failed before any write (size/count caps)."""

    kind = ErrorKind.VALIDATION


class StoreUnavailable(EmailerError):
    """Backing table or bucket could not be reached."""

    kind = ErrorKind.STORE_UNAVAILABLE


class NotFound(EmailerError):
    """Requested record or blob does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(EmailerError):
    """A record with the same (partition, row) key already exists."""

    kind = ErrorKind.CONFLICT


class ProviderError(EmailerError):
    """Delivery provider rejected the message or could not be reached."""

    kind = ErrorKind.PROVIDER

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(EmailerError):
    """Required configuration is missing at startup."""

    kind = ErrorKind.CONFIGURATION
