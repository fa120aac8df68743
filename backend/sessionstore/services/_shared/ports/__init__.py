"""
sessionstore.services._shared.ports
===================================

*Ports* (hexagonal interfaces) that define the contract for refresh-token
and revocation storage.

Modules
-------
- :mod:`token_repository`:
    Defines :class:`~.TokenRepository`, the single abstraction both the
    in-process and the Redis backends implement, plus the key conventions
    (:func:`~.session_key`, :func:`~.blacklist_key`) and argument validators.

Design Notes
------------
The port follows the *Dependency Inversion Principle (DIP)*: services only
depend on :class:`~.TokenRepository`. Concrete adapters live under
``sessionstore.infra``.
"""

from __future__ import annotations

from .token_repository import (
    BLACKLIST_PREFIX,
    DEFAULT_SET_TTL,
    SESSION_PREFIX,
    TokenRepository,
    blacklist_key,
    require_key,
    require_ttl,
    require_value,
    session_key,
)

__all__ = [
    "TokenRepository",
    "DEFAULT_SET_TTL",
    "SESSION_PREFIX",
    "BLACKLIST_PREFIX",
    "session_key",
    "blacklist_key",
    "require_key",
    "require_ttl",
    "require_value",
]
