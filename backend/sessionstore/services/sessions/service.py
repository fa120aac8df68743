# sessionstore/services/sessions/service.py
from __future__ import annotations

import logging
import math
from datetime import UTC, datetime

from sessionstore.services._shared.errors import SessionInvalidError
from sessionstore.services._shared.ports import TokenRepository, blacklist_key, session_key
from sessionstore.services.sessions.dto import RevokeIn, SessionConfig

log = logging.getLogger(__name__)

REVOKED_MARKER = "1"


class SessionService:
    """
    Refresh-session lifecycle (login / refresh / logout) over a
    :class:`TokenRepository`.

    Every user owns one session group (``refresh:{user_id}``) holding the
    refresh tokens of all their devices. Revoked tokens additionally get a
    ``blacklist:{token}`` marker that lives as long as the token itself.
    Tokens are opaque here; issuing and decoding them is the caller's job.
    """

    def __init__(self, *, repository: TokenRepository, cfg: SessionConfig | None = None) -> None:
        """
        :param repository: Token storage backend (memory or Redis).
        :param cfg: Session lifetime configuration.
        """
        self.repository = repository
        self.cfg = cfg or SessionConfig()

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def open_session(self, user_id: str, refresh_token: str) -> None:
        """
        Register a freshly issued refresh token for ``user_id``.

        Joining an existing group never extends its expiry.
        """
        key = session_key(user_id)
        self.repository.add_to_set(key, refresh_token, self.cfg.refresh_ttl)
        self.repository.cleanup_expired_tokens(user_id)
        log.info("Session opened for user %s", user_id, extra={"store_key": key})

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def is_revoked(self, token: str) -> bool:
        return self.repository.get(blacklist_key(token)) is not None

    def is_active(self, user_id: str, refresh_token: str) -> bool:
        """A refresh token is active when it is not blacklisted and still in its group."""
        if self.is_revoked(refresh_token):
            return False
        return refresh_token in self.repository.get_set(session_key(user_id))

    def active_sessions(self, user_id: str) -> list[str]:
        return self.repository.get_set(session_key(user_id))

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def rotate(self, user_id: str, old_token: str, new_token: str) -> None:
        """
        Replace ``old_token`` by ``new_token`` in the user's group.

        The new member is added before the old one is removed, so the group is
        never emptied mid-rotation and keeps the expiry of its first login.

        The activity check and the swap are separate storage calls, not one
        atomic step: two concurrent rotations of the same ``old_token`` can
        both pass the check. A replay is only refused once the first rotation
        has removed ``old_token``.

        :raises SessionInvalidError: If ``old_token`` is not an active session.
        """
        if not self.is_active(user_id, old_token):
            log.warning("Rotation refused for user %s: inactive refresh token", user_id)
            raise SessionInvalidError("Invalid refresh token")

        key = session_key(user_id)
        self.repository.add_to_set(key, new_token, self.cfg.refresh_ttl)
        self.repository.remove_from_set(key, old_token)
        self.repository.cleanup_expired_tokens(user_id)
        log.info("Refresh token rotated for user %s", user_id, extra={"store_key": key})

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def revoke(self, dto: RevokeIn) -> None:
        """
        Revoke the tokens of a single device.

        The refresh token leaves the group; both tokens are blacklisted for
        their remaining lifetime (skipped once they are already expired).
        """
        if dto.refresh_token:
            self.repository.remove_from_set(session_key(dto.user_id), dto.refresh_token)
            self._blacklist(dto.refresh_token, dto.refresh_expires_at)
        if dto.access_token:
            self._blacklist(dto.access_token, dto.access_expires_at)
        log.info("User %s logged out", dto.user_id)

    def revoke_all(self, user_id: str) -> int:
        """
        Revoke every session of ``user_id`` (logout everywhere, compromise response).

        Members are blacklisted for ``refresh_ttl``: no member of the group can
        outlive that window from now.

        :returns: Number of revoked refresh tokens.
        """
        key = session_key(user_id)
        tokens = self.repository.get_set(key)
        for token in tokens:
            self.repository.set(blacklist_key(token), REVOKED_MARKER, self.cfg.refresh_ttl)
        self.repository.delete(key)
        log.info(
            "All sessions revoked for user %s (%d tokens)",
            user_id,
            len(tokens),
            extra={"store_key": key},
        )
        return len(tokens)

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _blacklist(self, token: str, expires_at: datetime | None) -> None:
        if expires_at is None:
            return
        remaining = self._seconds_until(expires_at)
        if remaining > 0:
            self.repository.set(blacklist_key(token), REVOKED_MARKER, remaining)

    def _seconds_until(self, expires_at: datetime) -> int:
        # naive datetimes are labelled UTC, not converted
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        # rounded up: the marker must never expire before the token
        return math.ceil((expires_at - self.now_utc()).total_seconds())

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)
