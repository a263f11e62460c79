import logging
from pathlib import Path

import pytest

from tmplcache import Cache, create_cache


@pytest.mark.asyncio
async def test_create_cache_from_config(tmp_path: Path, make_file):
    cache_dir = tmp_path / "configured-cache"
    config_file = tmp_path / "config.yaml"
    config_file.write_text(f"cache:\n  dir: {cache_dir}\n  max_files: 5\n  auto_cleanup: false\n")

    cache = create_cache(config_file=config_file, env_file=tmp_path / "missing.env")

    assert isinstance(cache, Cache)
    assert cache.options.max_files == 5
    assert cache.cache_dir == cache_dir.resolve()
    source = make_file("template.txt")
    await cache.set(source, "rendered")
    assert await cache.get(source) == "rendered"


def test_overrides_win_over_config(tmp_path: Path):
    cache = create_cache(
        config_file=tmp_path / "absent.yaml",
        env_file=tmp_path / "missing.env",
        cache_dir=tmp_path / "override",
        ttl_days=0.5,
        auto_cleanup=False,
    )

    assert cache.options.ttl_days == 0.5
    assert cache.cache_dir == (tmp_path / "override").resolve()


def test_create_cache_can_configure_logging(tmp_path: Path, mocker):
    setup = mocker.patch("tmplcache.main.setup_logging")
    config_file = tmp_path / "config.yaml"
    config_file.write_text(f"cache:\n  dir: {tmp_path / 'c'}\nlogging:\n  level: warning\n")

    create_cache(config_file=config_file, env_file=tmp_path / "missing.env", configure_logging=True)

    setup.assert_called_once()
    assert setup.call_args.kwargs["log_level"] == logging.WARNING
