from __future__ import annotations

import logging
from typing import Final, Protocol

from sessionstore.services._shared.errors import InvalidArgumentError, StorageError

log = logging.getLogger(__name__)

#: Default lifetime of a user's session group (7 days).
DEFAULT_SET_TTL: Final[int] = 7 * 24 * 60 * 60

SESSION_PREFIX: Final[str] = "refresh"
BLACKLIST_PREFIX: Final[str] = "blacklist"


def session_key(user_id: str | int) -> str:
    """Return the key of the set holding every refresh token of ``user_id``."""
    return f"{SESSION_PREFIX}:{user_id}"


def blacklist_key(token: str) -> str:
    """Return the key of the revocation marker for ``token``."""
    return f"{BLACKLIST_PREFIX}:{token}"


def require_key(key: str, *, what: str = "key") -> str:
    """
    Validate a storage key (or set member) before any I/O happens.

    :raises InvalidArgumentError: If ``key`` is not a non-empty string.
    """
    if not isinstance(key, str) or not key:
        raise InvalidArgumentError(f"{what} must be a non-empty string")
    return key


def require_value(value: str) -> str:
    """
    Validate a record value. Values are stored and returned as text.

    :raises InvalidArgumentError: If ``value`` is not a string.
    """
    if not isinstance(value, str):
        raise InvalidArgumentError(f"value must be a string, got {type(value).__name__}")
    return value


def require_ttl(ttl: int) -> int:
    """
    Validate a time-to-live expressed in whole seconds.

    :raises InvalidArgumentError: If ``ttl`` is not a positive integer.
    """
    # bool is an int subclass; True is not a meaningful lifetime
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
        raise InvalidArgumentError(f"ttl must be a positive integer, got {ttl!r}")
    return ttl


class TokenRepository(Protocol):
    """
    Revocable-session storage shared by every backend.

    Records are ``key -> (value, expiry)`` and sets are
    ``key -> (members, expiry)``. Absent and expired entries are
    indistinguishable: both read as ``None`` / ``[]``.

    All failures of the underlying storage MUST surface as
    :class:`~sessionstore.services._shared.errors.StorageError`.
    """

    def set(self, key: str, value: str, ttl: int) -> None:
        """Create or overwrite a record expiring ``ttl`` seconds from now."""

    def get(self, key: str) -> str | None:
        """Return the record value, or ``None`` when absent or expired."""

    def delete(self, key: str) -> None:
        """Remove ``key`` (record or set). Deleting a missing key is a no-op."""

    def add_to_set(self, key: str, value: str, ttl: int = DEFAULT_SET_TTL) -> None:
        """
        Add ``value`` to the set at ``key``.

        ``ttl`` is applied **only** when this call creates the set. Adding to
        an existing set never extends its expiry, so the group's lifetime is
        bounded by its first member.
        """

    def get_set(self, key: str) -> list[str]:
        """Return the live members of the set (sorted), ``[]`` if absent or expired."""

    def remove_from_set(self, key: str, value: str) -> None:
        """Remove ``value`` from the set; an emptied set is deleted."""

    def remaining_ttl(self, key: str) -> int | None:
        """Seconds until ``key`` expires, ``None`` if absent (read-only introspection)."""

    def dispose(self) -> None:
        """Release the storage handle. Must be idempotent."""

    def cleanup_expired_tokens(self, user_id: str | int) -> int:
        """
        Advisory reconcile pass over the session set of ``user_id``.

        Reading the set evicts it when expired. Members that also carry a
        blacklist marker are already revoked and get pruned from the set.
        Expiry is enforced independently, so skipping this call never changes
        what is considered valid.

        :returns: Number of members pruned. Storage faults are logged and
            reported as ``0``.
        """
        key = session_key(user_id)
        try:
            members = self.get_set(key)
            revoked = [m for m in members if self.get(blacklist_key(m)) is not None]
            for member in revoked:
                self.remove_from_set(key, member)
        except StorageError as exc:
            log.warning("Token cleanup skipped for %s: %s", key, exc, extra={"store_key": key})
            return 0

        log.debug(
            "Token cleanup for %s: live=%d pruned=%d",
            key,
            len(members) - len(revoked),
            len(revoked),
            extra={"store_key": key},
        )
        return len(revoked)
