"""Tests for the filesystem session store."""

import asyncio
import json

import pytest
import pytest_asyncio

from sessionkit.session import FileStore


@pytest_asyncio.fixture
async def store(tmp_path):
    s = FileStore(tmp_path / "sessions", cleanup_interval=3600)
    yield s
    await s.close()


@pytest.mark.asyncio
async def test_directory_created_lazily(tmp_path):
    directory = tmp_path / "lazy"
    s = FileStore(directory)
    assert not directory.exists()
    await s.set("sid", {"a": 1}, 60_000)
    assert directory.is_dir()
    await s.close()


@pytest.mark.asyncio
async def test_set_writes_record(store):
    assert (await store.set("sid", {"a": 1}, 60_000)).ok
    record = json.loads((store.directory / "sid.json").read_text())
    assert record["data"] == {"a": 1}
    assert record["expiresAt"] > record["updatedAt"]


@pytest.mark.asyncio
async def test_get_roundtrip(store):
    await store.set("sid", {"user": {"id": 1}}, 60_000)
    assert await store.get("sid") == {"user": {"id": 1}}


@pytest.mark.asyncio
async def test_get_missing(store):
    assert await store.get("nope") is None


@pytest.mark.asyncio
async def test_expired_file_is_removed_on_get(store):
    await store.set("sid", {"a": 1}, 60_000)
    path = store.directory / "sid.json"
    record = json.loads(path.read_text())
    record["expiresAt"] = 0
    path.write_text(json.dumps(record))

    assert await store.get("sid") is None
    assert not path.exists()


@pytest.mark.asyncio
async def test_corrupt_file_reads_as_missing(store):
    await store.set("sid", {"a": 1}, 60_000)
    (store.directory / "sid.json").write_text("{not json")
    assert await store.get("sid") is None


@pytest.mark.asyncio
async def test_malformed_record_reads_as_missing(store):
    await store.set("sid", {"a": 1}, 60_000)
    (store.directory / "sid.json").write_text(json.dumps({"data": "not-a-dict"}))
    assert await store.get("sid") is None


@pytest.mark.asyncio
async def test_id_is_sanitized(store):
    await store.set("../../etc/passwd", {"a": 1}, 60_000)
    assert (store.directory / "etcpasswd.json").exists()
    assert await store.get("../../etc/passwd") == {"a": 1}


@pytest.mark.asyncio
async def test_unusable_id_fails_to_save(store):
    result = await store.set("../..", {"a": 1}, 60_000)
    assert not result.ok
    assert result.error == "failed to save session"
    assert await store.get("../..") is None


@pytest.mark.asyncio
async def test_unserializable_data_fails_to_save(store):
    result = await store.set("sid", {"a": object()}, 60_000)
    assert not result.ok


@pytest.mark.asyncio
async def test_destroy(store):
    await store.set("sid", {"a": 1}, 60_000)
    assert (await store.destroy("sid")).ok
    assert await store.get("sid") is None
    assert (await store.destroy("sid")).ok


@pytest.mark.asyncio
async def test_touch_extends_expiry(store):
    await store.set("sid", {"a": 1}, 1_000)
    path = store.directory / "sid.json"
    before = json.loads(path.read_text())["expiresAt"]
    assert (await store.touch("sid", 60_000)).ok
    after = json.loads(path.read_text())
    assert after["expiresAt"] > before
    assert after["data"] == {"a": 1}


@pytest.mark.asyncio
async def test_touch_missing_is_noop(store):
    assert (await store.touch("nope", 60_000)).ok
    assert await store.length() == 0


@pytest.mark.asyncio
async def test_length_and_clear(store):
    await store.set("a", {}, 60_000)
    await store.set("b", {}, 60_000)
    assert await store.length() == 2
    assert (await store.clear()).ok
    assert await store.length() == 0


@pytest.mark.asyncio
async def test_sweep_removes_only_expired(store):
    await store.set("old", {}, 60_000)
    await store.set("new", {}, 60_000)
    path = store.directory / "old.json"
    record = json.loads(path.read_text())
    record["expiresAt"] = 0
    path.write_text(json.dumps(record))

    await store.sweep()
    assert not path.exists()
    assert (store.directory / "new.json").exists()


@pytest.mark.asyncio
async def test_no_temp_files_left_behind(store):
    await store.set("sid", {"a": 1}, 60_000)
    await store.set("sid", {"a": 2}, 60_000)
    assert sorted(p.name for p in store.directory.iterdir()) == ["sid.json"]


def _write_record(store, session_id, **record):
    store.directory.mkdir(parents=True, exist_ok=True)
    (store.directory / f"{session_id}.json").write_text(json.dumps(record))


@pytest.mark.asyncio
async def test_non_numeric_expiry_reads_as_missing(store):
    _write_record(store, "sid", data={"a": 1}, expiresAt="tomorrow", updatedAt=0)
    assert await store.get("sid") is None
    assert (await store.touch("sid", 60_000)).ok


@pytest.mark.asyncio
async def test_sweep_skips_malformed_records(store):
    _write_record(store, "bad", data={"a": 1}, expiresAt="tomorrow", updatedAt=0)
    _write_record(store, "old", data={}, expiresAt=0, updatedAt=0)

    assert await store.sweep() == 1
    assert (store.directory / "bad.json").exists()
    assert not (store.directory / "old.json").exists()


@pytest.mark.asyncio
async def test_background_sweep_survives_a_failed_pass(tmp_path, caplog):
    s = FileStore(tmp_path / "sessions", cleanup_interval=0.01)
    passes = []

    async def flaky_sweep():
        passes.append(1)
        if len(passes) == 1:
            raise RuntimeError("disk on fire")
        return 0

    s.sweep = flaky_sweep
    await s.set("sid", {"a": 1}, 60_000)
    for _ in range(50):
        if len(passes) >= 2:
            break
        await asyncio.sleep(0.01)
    await s.close()

    assert len(passes) >= 2
    assert "Session file sweep failed" in caplog.text
