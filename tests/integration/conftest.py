# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests.

Most integration tests run the full tier stack against an on-disk SQLite
database and a scripted vision provider. The Redis cache backend runs
against a real server started with testcontainers.

Container lifecycle:
- session scope: the Redis container starts once per pytest session
- function scope: fresh key namespace (flushed DB) per test

Containers are reached through their bridge network IP + internal port,
which works both on a plain host and inside a devcontainer using
docker-outside-of-docker (where localhost:mapped_port is unreachable).
"""

from __future__ import annotations

import logging
import time

import pytest

from scavy.api.facade import build_context
from scavy.storage.database import Database

logger = logging.getLogger(__name__)


# ── Pytest markers ──────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "redis: marks tests requiring Redis container")


# =====================================================================
#  DEVCONTAINER NETWORKING HELPERS
# =====================================================================

def _get_container_bridge_ip(container, max_attempts: int = 10) -> str:
    """Get container bridge network IP with retries."""
    for attempt in range(max_attempts):
        try:
            wrapped = container.get_wrapped_container()
            wrapped.reload()
            networks = wrapped.attrs.get("NetworkSettings", {}).get("Networks", {})
            for net_name, net_info in networks.items():
                ip = net_info.get("IPAddress", "")
                if ip:
                    logger.info(
                        "Container %s IP: %s (network: %s, attempt %d)",
                        wrapped.short_id, ip, net_name, attempt + 1,
                    )
                    return ip
            logger.debug("Container IP empty, attempt %d/%d", attempt + 1, max_attempts)
        except Exception as e:
            logger.debug("Error getting IP (attempt %d): %s", attempt + 1, e)
        time.sleep(0.5)

    raise RuntimeError(
        f"Could not obtain container bridge IP after {max_attempts} attempts"
    )


def _docker_available() -> bool:
    """Check if Docker daemon is reachable."""
    try:
        import docker
        client = docker.from_env()
        client.ping()
        return True
    except Exception:
        return False


# =====================================================================
#  FILE-BACKED CONTEXT — no Docker required
# =====================================================================


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "scavy.db"


@pytest.fixture
def file_database(db_path):
    db = Database(db_path)
    yield db
    db.close()


@pytest.fixture
def int_context(settings, file_database, mock_provider):
    """Context wired exactly as the CLI wires it, on an on-disk database."""
    return build_context(settings, database=file_database, providers={"gemini": mock_provider})


# =====================================================================
#  REDIS CONTAINER — session scope (bridge IP)
# =====================================================================

REDIS_IMAGE = "redis:7-alpine"
REDIS_PORT = 6379


@pytest.fixture(scope="session")
def redis_container():
    if not _docker_available():
        pytest.skip("Docker not available")

    from testcontainers.core.container import DockerContainer
    from testcontainers.core.waiting_utils import wait_for_logs

    container = DockerContainer(REDIS_IMAGE).with_exposed_ports(REDIS_PORT)
    container.start()
    wait_for_logs(container, predicate=r"Ready to accept connections", timeout=60)

    ip = _get_container_bridge_ip(container)
    logger.info("Redis ready at %s:%d", ip, REDIS_PORT)
    yield {"host": ip, "port": REDIS_PORT}
    container.stop()


@pytest.fixture(scope="session")
def redis_url(redis_container) -> str:
    c = redis_container
    return f"redis://{c['host']}:{c['port']}/0"


@pytest.fixture
def redis_store(redis_url):
    from scavy.cache.redis_store import RedisCacheStore

    store = RedisCacheStore(redis_url=redis_url)
    store._client.flushdb()
    yield store
    store._client.flushdb()
    store.close()
