# tests/unit/services/test_session_service.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sessionstore.services._shared.errors import SessionInvalidError
from sessionstore.services._shared.ports import blacklist_key, session_key
from sessionstore.services.sessions import RevokeIn, SessionConfig, SessionService

TTL = 3600


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def service(memory_repo) -> SessionService:
    """Build a SessionService wired to the clock-driven memory repository."""
    return SessionService(repository=memory_repo, cfg=SessionConfig(refresh_ttl=TTL))


@pytest.fixture()
def frozen_now(service, monkeypatch) -> datetime:
    """Pin the service's notion of "now" so remaining lifetimes are exact."""
    now = datetime(2026, 1, 1, tzinfo=UTC)
    monkeypatch.setattr(service, "now_utc", lambda: now)
    return now


def _in(seconds: int) -> datetime:
    return datetime.now(UTC) + timedelta(seconds=seconds)


# -------------------------------- Tests ----------------------------------- #
def test_open_session_registers_token_in_user_group(service, memory_repo):
    service.open_session("42", "rt-1")

    assert service.active_sessions("42") == ["rt-1"]
    assert service.is_active("42", "rt-1") is True
    assert memory_repo.remaining_ttl(session_key("42")) == TTL


def test_multi_device_logins_share_the_first_expiry(service, memory_repo, clock):
    service.open_session("42", "laptop")
    clock.advance(600)
    service.open_session("42", "phone")

    assert service.active_sessions("42") == ["laptop", "phone"]
    assert memory_repo.remaining_ttl(session_key("42")) == TTL - 600

    clock.advance(TTL - 600)
    assert service.active_sessions("42") == []
    assert service.is_active("42", "phone") is False


def test_token_of_another_user_is_not_active(service):
    service.open_session("1", "rt-1")
    assert service.is_active("2", "rt-1") is False


def test_rotate_replaces_token_and_keeps_group_expiry(service, memory_repo, clock):
    service.open_session("42", "rt-1")
    clock.advance(100)

    service.rotate("42", "rt-1", "rt-2")

    assert service.active_sessions("42") == ["rt-2"]
    assert memory_repo.remaining_ttl(session_key("42")) == TTL - 100


def test_rotate_rejects_unknown_token(service):
    service.open_session("42", "rt-1")

    with pytest.raises(SessionInvalidError):
        service.rotate("42", "forged", "rt-2")
    assert service.active_sessions("42") == ["rt-1"]


def test_rotate_rejects_blacklisted_token(service, memory_repo):
    service.open_session("42", "rt-1")
    memory_repo.set(blacklist_key("rt-1"), "1", 60)

    with pytest.raises(SessionInvalidError):
        service.rotate("42", "rt-1", "rt-2")


def test_rotate_refuses_replay_of_rotated_token(service):
    service.open_session("42", "rt-1")
    service.rotate("42", "rt-1", "rt-2")

    with pytest.raises(SessionInvalidError):
        service.rotate("42", "rt-1", "rt-3")
    assert service.active_sessions("42") == ["rt-2"]


def test_revoke_drops_refresh_and_blacklists_both_tokens(service, memory_repo):
    service.open_session("42", "rt-1")
    service.open_session("42", "rt-2")

    service.revoke(
        RevokeIn(
            user_id="42",
            refresh_token="rt-1",
            refresh_expires_at=_in(TTL),
            access_token="at-1",
            access_expires_at=_in(900),
        )
    )

    assert service.active_sessions("42") == ["rt-2"]
    assert service.is_revoked("rt-1") is True
    assert service.is_revoked("at-1") is True
    assert 0 < memory_repo.remaining_ttl(blacklist_key("at-1")) <= 900


def test_revoke_skips_blacklisting_expired_tokens(service, memory_repo):
    service.revoke(
        RevokeIn(user_id="42", access_token="at-old", access_expires_at=_in(-60))
    )
    assert service.is_revoked("at-old") is False


def test_revoke_labels_naive_expiry_as_utc(service):
    naive = (datetime.now(UTC) + timedelta(minutes=5)).replace(tzinfo=None)
    service.revoke(RevokeIn(user_id="42", access_token="at-1", access_expires_at=naive))
    assert service.is_revoked("at-1") is True


def test_revoke_of_unknown_token_is_noop(service):
    service.open_session("42", "rt-1")
    service.revoke(RevokeIn(user_id="42", refresh_token="unknown"))
    assert service.active_sessions("42") == ["rt-1"]


def test_revoke_all_blacklists_every_token_and_drops_group(service, memory_repo):
    for token in ("a", "b", "c"):
        service.open_session("42", token)

    assert service.revoke_all("42") == 3

    assert service.active_sessions("42") == []
    assert all(service.is_revoked(t) for t in ("a", "b", "c"))
    assert memory_repo.remaining_ttl(blacklist_key("a")) == TTL


def test_revoke_all_without_sessions_returns_zero(service):
    assert service.revoke_all("nobody") == 0


def test_open_session_prunes_revoked_members(service, memory_repo):
    memory_repo.add_to_set(session_key("42"), "stale")
    memory_repo.set(blacklist_key("stale"), "1", 60)

    service.open_session("42", "fresh")

    assert service.active_sessions("42") == ["fresh"]


def test_revoke_blacklists_token_with_sub_second_lifetime(service, frozen_now):
    expires_at = frozen_now + timedelta(milliseconds=900)

    service.revoke(RevokeIn(user_id="42", access_token="at-1", access_expires_at=expires_at))

    assert service.is_revoked("at-1") is True


def test_revoke_rounds_fractional_lifetime_up(service, memory_repo, frozen_now):
    expires_at = frozen_now + timedelta(seconds=10, milliseconds=900)

    service.revoke(RevokeIn(user_id="42", access_token="at-1", access_expires_at=expires_at))

    assert memory_repo.remaining_ttl(blacklist_key("at-1")) == 11


def test_revoke_skips_token_expiring_right_now(service, frozen_now):
    service.revoke(RevokeIn(user_id="42", access_token="at-1", access_expires_at=frozen_now))
    assert service.is_revoked("at-1") is False
