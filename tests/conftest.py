import os
from pathlib import Path

import pytest

from tmplcache.domain.models.options import CacheOptions
from tmplcache.infrastructure.cache.caching_service import Cache
from tmplcache.infrastructure.config import settings


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: float = 1_700_000_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / ".cache"


@pytest.fixture
def make_file(tmp_path: Path):
    """Writes a source file under a scratch directory and returns its path as str."""
    source_dir = tmp_path / "sources"
    source_dir.mkdir()

    def _make(name: str, content="content") -> str:
        path = source_dir / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
        return str(path)

    return _make


@pytest.fixture
def make_cache(cache_dir: Path):
    """Builds caches over the shared cache directory; auto cleanup off by default."""

    def _make(**overrides) -> Cache:
        clock = overrides.pop("clock", None)
        store = overrides.pop("store", None)
        fields = {"cache_dir": cache_dir, "ttl_days": 1, "auto_cleanup": False}
        fields.update(overrides)
        return Cache(CacheOptions(**fields), store=store, clock=clock)

    return _make


@pytest.fixture
def cache(make_cache) -> Cache:
    return make_cache()


def _set_mtime_ms(path: str, value_ms: float) -> None:
    ns = int(value_ms * 1_000_000)
    os.utime(path, ns=(ns, ns))


def _mtime_ms(path: str) -> float:
    return os.stat(path).st_mtime_ns / 1_000_000


@pytest.fixture
def set_mtime():
    """Sets a file's modification time in epoch milliseconds."""
    return _set_mtime_ms


@pytest.fixture
def get_mtime():
    return _mtime_ms


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps host configuration out of tests."""
    for name in list(os.environ):
        if name.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    settings.reset_configuration()
    settings.clear_test_config()
    yield
    settings.reset_configuration()
    settings.clear_test_config()
