from fakeredis import FakeAsyncRedis
import pytest

from queue_explorer.cache import MemoryQueueNameCache
from queue_explorer.config import get_settings


@pytest.fixture
def fake_redis():
    return FakeAsyncRedis(decode_responses=True)


@pytest.fixture
def memory_cache():
    return MemoryQueueNameCache()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep tests away from the user's environment and cache directory."""
    for name in ("CONNECTIONS_FILE", "CACHE_DIR", "LOG_FORMAT", "LOG_LEVEL"):
        monkeypatch.delenv(f"QUEUE_EXPLORER_{name}", raising=False)
    monkeypatch.setenv("QUEUE_EXPLORER_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
