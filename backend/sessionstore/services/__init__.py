"""Service layer public API.

This package exposes the building blocks of the session layer so that callers
can import from :mod:`sessionstore.services` without knowing internal structure.

Re-exports
----------
- Errors (from ``sessionstore.services._shared.errors``)
    * :class:`ServiceError`, :class:`StorageError`,
      :class:`InvalidArgumentError`, :class:`SessionInvalidError`

- Port (from ``sessionstore.services._shared.ports``)
    * :class:`TokenRepository`

- Session service (from ``sessionstore.services.sessions``)
    * :class:`SessionService`
    * DTOs: :class:`SessionConfig`, :class:`RevokeIn`
"""

from __future__ import annotations

from ._shared.errors import (
    InvalidArgumentError,
    ServiceError,
    SessionInvalidError,
    StorageError,
)
from ._shared.ports import TokenRepository
from .sessions import RevokeIn, SessionConfig, SessionService

__all__ = [
    "ServiceError",
    "StorageError",
    "InvalidArgumentError",
    "SessionInvalidError",
    "TokenRepository",
    "SessionService",
    "SessionConfig",
    "RevokeIn",
]
