import asyncio
import json
from pathlib import Path

import pytest

from tmplcache.domain.models.common import CacheKey, EpochMillis
from tmplcache.domain.models.entry import CacheEntry
from tmplcache.domain.models.errors import SerializationError
from tmplcache.infrastructure.cache.store import DiskEntryStore, MemoryEntryStore
from tmplcache.infrastructure.filesystem.local_fs import LocalFileSystem


@pytest.fixture
def store(cache_dir: Path) -> DiskEntryStore:
    disk_store = DiskEntryStore(cache_dir, LocalFileSystem())
    assert disk_store.provision() is True
    return disk_store


def data_entry(key="entry-key", data="value", created_at=1_000.0):
    return CacheEntry(key=CacheKey(key), data=data, created_at=EpochMillis(created_at))


@pytest.mark.asyncio
async def test_persist_writes_envelope(store: DiskEntryStore, cache_dir: Path):
    entry = CacheEntry(
        key=CacheKey("abc"), data={"x": 1}, created_at=EpochMillis(10.0), size=3, mtime=EpochMillis(20.0), hash="ff",
    )
    await store.persist(entry)

    record = json.loads((cache_dir / "abc.json").read_text())
    assert record == {
        "version": 1, "key": "abc", "data": {"x": 1}, "created_at": 10.0, "size": 3, "mtime": 20.0, "hash": "ff",
    }
    assert store.peek(CacheKey("abc")) is entry
    assert [p.name for p in cache_dir.iterdir()] == ["abc.json"]


@pytest.mark.asyncio
async def test_data_entry_envelope_omits_file_fields(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry())
    record = json.loads((cache_dir / "entry-key.json").read_text())
    assert set(record) == {"version", "key", "data", "created_at"}


@pytest.mark.asyncio
async def test_unsafe_keys_get_hashed_file_names(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="../escape/attempt"))

    files = list(cache_dir.iterdir())
    assert len(files) == 1
    assert files[0].parent == cache_dir
    assert json.loads(files[0].read_text())["key"] == "../escape/attempt"


@pytest.mark.asyncio
async def test_persist_raises_serialization_error_before_install(store: DiskEntryStore, cache_dir: Path):
    with pytest.raises(SerializationError):
        await store.persist(data_entry(data={1, 2}))

    assert store.peek(CacheKey("entry-key")) is None
    assert list(cache_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_writes_for_one_key_end_with_the_resident_entry(store: DiskEntryStore, cache_dir: Path, mocker):
    spy = mocker.spy(store.fs, "write_file")
    entries = [data_entry(data=value) for value in ("first", "second", "third")]

    await asyncio.gather(*(store.persist(item) for item in entries))

    # "second" was replaced before its turn to write
    assert spy.call_count == 2
    assert store.peek(CacheKey("entry-key")) is entries[-1]
    assert json.loads((cache_dir / "entry-key.json").read_text())["data"] == "third"
    assert list(cache_dir.glob("*.tmp")) == []


@pytest.mark.asyncio
async def test_load_skips_corrupted_files(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="good"))
    (cache_dir / "broken.json").write_text("{")
    (cache_dir / "partial.json").write_text(json.dumps({"key": "partial", "data": 1}))
    (cache_dir / "list.json").write_text("[1, 2, 3]")

    fresh = DiskEntryStore(cache_dir, LocalFileSystem())
    fresh.provision()
    assert await fresh.load() == 1
    assert fresh.peek(CacheKey("good")).data == "value"
    assert len(fresh) == 1


@pytest.mark.asyncio
async def test_load_accepts_null_data(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="nothing", data=None))

    fresh = DiskEntryStore(cache_dir, LocalFileSystem())
    fresh.provision()
    assert await fresh.load() == 1


@pytest.mark.asyncio
async def test_read_falls_back_to_disk_without_admitting(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="on-disk"))
    fresh = DiskEntryStore(cache_dir, LocalFileSystem())
    fresh.provision()

    entry = await fresh.read(CacheKey("on-disk"))

    assert entry.data == "value"
    assert fresh.peek(CacheKey("on-disk")) is None


@pytest.mark.asyncio
async def test_read_deserialization_failure_tombstones(store: DiskEntryStore, cache_dir: Path, mocker):
    await store.persist(data_entry(key="bad"))
    serializer = mocker.MagicMock()
    serializer.deserialize.side_effect = ValueError("nope")
    fresh = DiskEntryStore(cache_dir, LocalFileSystem(), serializer)
    fresh.provision()

    assert await fresh.read(CacheKey("bad")) is None
    assert fresh.peek(CacheKey("bad")).tombstone is True
    assert (cache_dir / "bad.json").exists()


@pytest.mark.asyncio
async def test_list_records_classifies_files(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="good", created_at=42.0))
    (cache_dir / "broken.json").write_text("nope")
    (cache_dir / "notes.txt").write_text("ignored")

    records = {Path(r.path).name: r for r in await store.list_records()}

    assert set(records) == {"good.json", "broken.json"}
    assert records["good.json"].key == "good"
    assert records["good.json"].created_at == 42.0
    assert records["broken.json"].corrupted is True
    assert records["broken.json"].size_bytes == 4


@pytest.mark.asyncio
async def test_delete_record_of_missing_file_frees_nothing(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="gone"))
    [record] = await store.list_records()
    (cache_dir / "gone.json").unlink()

    assert await store.delete_record(record) == 0


@pytest.mark.asyncio
async def test_clear_removes_every_file(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="one"))
    (cache_dir / "stray.tmp").write_text("x")

    await store.clear()

    assert len(store) == 0
    assert list(cache_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_disk_usage_counts_entry_files(store: DiskEntryStore, cache_dir: Path):
    await store.persist(data_entry(key="one"))
    await store.persist(data_entry(key="two"))

    total, files = await store.disk_usage()

    assert files == 2
    assert total == sum(p.stat().st_size for p in cache_dir.iterdir())


@pytest.mark.asyncio
async def test_unprovisionable_store_is_a_no_op(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file")
    disabled = DiskEntryStore(blocker / "cache", LocalFileSystem())

    assert disabled.provision() is False
    assert disabled.enabled is False
    await disabled.persist(data_entry())
    assert await disabled.read(CacheKey("entry-key")) is None
    assert await disabled.load() == 0
    assert await disabled.list_records() == []
    assert await disabled.disk_usage() == (0, 0)


@pytest.mark.asyncio
async def test_memory_store_tombstones_hide_entries():
    store = MemoryEntryStore()
    await store.persist(data_entry(key="k"))
    assert len(store) == 1

    store.mark_invalid(CacheKey("k"))

    assert await store.read(CacheKey("k")) is None
    assert len(store) == 0
    assert len(store.entries()) == 1
