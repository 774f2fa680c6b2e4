"""Pytest configuration and shared fixtures."""

import contextlib
import shutil
import subprocess
import tempfile
import time
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime

import pytest
import redis
from redis.exceptions import RedisError

from src.core.config import settings
from src.core.redis_client import RedisClient


REDIS_TEST_PORT = 6391


@pytest.fixture
def now() -> datetime:
    """Fixed clock: Wednesday 2025-01-01 12:00 UTC."""
    return datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def creation_triggered_recurrence(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pin the recurrence trigger so a local .env cannot change test behavior."""
    monkeypatch.setattr(settings, "recurrence_trigger", "creation")


@pytest.fixture(scope="session")
def redis_server() -> Generator[str]:
    """Start an ephemeral Redis server for integration tests."""
    redis_binary = shutil.which("redis-server")
    if redis_binary is None:
        pytest.skip("redis-server binary not found in PATH")

    assert redis_binary is not None  # For type checker (pytest.skip already handles None case)

    data_dir = tempfile.mkdtemp(prefix="redis_test_")
    process = subprocess.Popen(
        [
            redis_binary,
            "--port",
            str(REDIS_TEST_PORT),
            "--bind",
            "127.0.0.1",
            "--dir",
            data_dir,
            "--save",
            "",
            "--appendonly",
            "no",
        ],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )

    redis_url = f"redis://127.0.0.1:{REDIS_TEST_PORT}/0"
    max_wait = 10  # seconds
    start_time = time.time()

    # Wait for Redis to accept connections
    while time.time() - start_time < max_wait:
        try:
            if redis.Redis.from_url(redis_url).ping():
                break
        except RedisError:
            time.sleep(0.2)
    else:
        stdout, stderr = b"", b""
        with contextlib.suppress(subprocess.TimeoutExpired):
            stdout, stderr = process.communicate(timeout=1)
        process.kill()
        shutil.rmtree(data_dir, ignore_errors=True)
        error_msg = "Redis failed to start within 10 seconds"
        if stdout:
            error_msg += f"\nStdout: {stdout.decode()[:500]}"
        if stderr:
            error_msg += f"\nStderr: {stderr.decode()[:500]}"
        pytest.fail(error_msg)

    yield redis_url

    process.kill()
    process.wait()
    shutil.rmtree(data_dir, ignore_errors=True)


@pytest.fixture
async def redis_store(redis_server: str) -> AsyncGenerator[RedisClient]:
    """RedisClient over an empty database, closed after the test."""
    redis.Redis.from_url(redis_server).flushdb()
    client = RedisClient(redis_server)
    yield client
    await client.close()
