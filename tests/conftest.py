import pytest

from bizdir.cache.ttl_cache import create_cache
from bizdir.config import reset_settings
from bizdir.explorer import ExplorerService
from bizdir.storage.database import DatabaseManager


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep ambient env vars and earlier tests from leaking into settings."""
    for name in ("DEFAULT_LOCALE", "EXPLORER_CACHE_TTL_MS", "EXPLORER_CACHE_MAX_ENTRIES"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
async def db():
    """In-memory SQLite database with schema applied."""
    manager = DatabaseManager(":memory:")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def explorer(db):
    """ExplorerService over the in-memory db with a fresh cache."""
    return ExplorerService(db, create_cache(60_000, 10))
