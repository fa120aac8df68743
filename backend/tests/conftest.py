"""Pytest fixtures for the token repositories, the session service and the app.

Every backend fixture is isolated per test: the memory store runs on a
controllable clock with its sweeper thread stopped, and the Redis store runs
against an in-memory ``fakeredis`` server.
"""

from __future__ import annotations

from collections.abc import Generator

import fakeredis
import pytest
from flask import Flask

from sessionstore import create_app
from sessionstore.core import extensions
from sessionstore.infra.memory.memory_token_repository import MemoryTokenRepository
from sessionstore.infra.redis.redis_token_repository import RedisTokenRepository
from sessionstore.services._shared.ports import TokenRepository


class FakeClock:
    """Deterministic replacement for :func:`time.time`."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestConfig:
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Forces the in-process backend.
    - Keeps the sweeper thread off; tests trigger passes explicitly.
    """

    TESTING = True
    DEBUG = False
    TOKEN_STORE_BACKEND = "memory"
    TOKEN_SWEEP_ENABLED = False
    TOKEN_SWEEP_INTERVAL = 300
    TOKEN_SWEEP_BATCH_SIZE = 500
    REFRESH_TOKEN_TTL = 3600
    LOG_LEVEL = "WARNING"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_repo(clock: FakeClock) -> Generator[MemoryTokenRepository, None, None]:
    """Provide a memory repository driven by :class:`FakeClock`."""
    repo = MemoryTokenRepository(clock=clock, start_sweeper=False)
    yield repo
    repo.dispose()


@pytest.fixture
def fake_redis() -> fakeredis.FakeRedis:
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def redis_repo(fake_redis: fakeredis.FakeRedis) -> RedisTokenRepository:
    """Provide a RedisTokenRepository backed by FakeRedis."""
    return RedisTokenRepository(r=fake_redis)


@pytest.fixture(params=["memory", "redis"])
def repo(request: pytest.FixtureRequest) -> TokenRepository:
    """Run a test once per backend; both must behave identically."""
    return request.getfixturevalue(f"{request.param}_repo")


@pytest.fixture
def app() -> Generator[Flask, None, None]:
    """Create a Flask application configured with :class:`TestConfig`."""
    application = create_app(TestConfig, instance_relative_config=False)
    yield application
    extensions.teardown_app(application)
