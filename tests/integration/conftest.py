"""
Fixtures for tests that run against a live Redis Stack server.

Every test in this package is skipped when the server at REDIS_URL cannot
be reached.
"""

from uuid import uuid4

import pytest
import redis
from redis.exceptions import RedisError

from vecsearch.config.settings import settings


@pytest.fixture(scope="session")
def redis_client():
    client = redis.Redis.from_url(
        settings.REDIS_URL,
        socket_connect_timeout=settings.REDIS_HEALTH_CHECK_TIMEOUT
    )
    try:
        client.ping()
        client.execute_command("FT._LIST")
    except RedisError as e:
        pytest.skip(f"Redis with search not available at {settings.REDIS_URL}: {e}")
    yield client
    client.close()


@pytest.fixture
def unique_name():
    return f"vecsearch-test-{uuid4().hex[:8]}"
