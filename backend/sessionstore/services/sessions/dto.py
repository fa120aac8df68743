# sessionstore/services/sessions/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sessionstore.services._shared.ports import DEFAULT_SET_TTL

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RevokeIn:
    """
    Input DTO for logout.

    Token lifetimes are supplied by the caller, which decodes the tokens.

    :param user_id: Owner of the session.
    :type user_id: str
    :param refresh_token: Refresh token to drop from the session group.
    :type refresh_token: str | None
    :param refresh_expires_at: Natural expiry of ``refresh_token``.
    :type refresh_expires_at: datetime | None
    :param access_token: Access token to blacklist until it expires.
    :type access_token: str | None
    :param access_expires_at: Natural expiry of ``access_token``.
    :type access_expires_at: datetime | None
    """

    user_id: str
    refresh_token: str | None = None
    refresh_expires_at: datetime | None = None
    access_token: str | None = None
    access_expires_at: datetime | None = None


# ------------------------ Config DTO (optional) --------------------------- #


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """
    Session lifetime configuration.

    :param refresh_ttl: Lifetime of a session group in seconds.
    :type refresh_ttl: int
    """

    refresh_ttl: int = DEFAULT_SET_TTL
