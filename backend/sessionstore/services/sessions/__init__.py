"""Refresh-session lifecycle service."""

from __future__ import annotations

from .dto import RevokeIn, SessionConfig
from .service import SessionService

__all__ = ["SessionService", "SessionConfig", "RevokeIn"]
