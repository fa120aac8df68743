"""
Domain-level exceptions used by the token repositories and session services.

These exceptions are **framework-agnostic** and never import Flask or a
storage client. Backends translate their own driver errors into
:class:`StorageError` so callers only ever handle this taxonomy.

Absence is not an error: a missing or expired entry is reported as ``None``
or an empty list, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The delivery layer decides how (and whether) to expose them.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class StorageError(ServiceError):
    """
    Raised when a backend I/O or protocol fault occurs.

    Always surfaced to the caller: a silently failed write either loses a
    revocation or drops a valid session.

    :param operation: Repository operation that failed (e.g. ``"add_to_set"``).
    :type operation: str
    :param key: Storage key involved in the failure.
    :type key: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    operation: str
    key: str
    detail: str = "storage backend failure"

    def __str__(self) -> str:
        return f"{self.operation} failed for key {self.key!r}: {self.detail}"


class InvalidArgumentError(ServiceError, ValueError):
    """
    Raised when a caller passes an empty key/member or a non-positive TTL.

    Rejected before any storage access happens.
    """

    def __init__(self, message: str = "Invalid argument") -> None:
        super().__init__(message)


class SessionInvalidError(ServiceError):
    """Raised when a presented refresh token is not an active session."""

    def __init__(self, message: str = "Refresh token is no longer valid") -> None:
        super().__init__(message)
