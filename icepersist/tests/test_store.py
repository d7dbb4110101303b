import io
import os
from unittest import mock

import pytest

from icepersist.constants import CHUNK_SIZE
from icepersist.filesystem import FileSystemResolver, RemoteIOError
from icepersist.model import Backend, Key, PersistState, Value
from icepersist.paths import ice_name
from icepersist.store import IceRootBusyError, ObjectStore, store_bytes

ICE_ROOT = "memory://ice/ice10.0.0.1-54321"


class FlakyStream(io.BytesIO):
    """Stream that fails with a connection reset once it reaches an offset."""

    def __init__(self, data: bytes, fail_at: int) -> None:
        super().__init__(data)
        self._fail_at = fail_at

    def read(self, size=-1):
        if self.tell() >= self._fail_at:
            raise ConnectionResetError("connection reset by peer")

        return super().read(min(size, self._fail_at - self.tell()))


class UnseekableStream(io.BytesIO):
    def seekable(self):
        return False


def fake_resolver(*streams):
    fs = mock.Mock()
    fs.open.side_effect = list(streams)

    resolver = mock.Mock(spec=FileSystemResolver)
    resolver.resolve.return_value = (fs, "file")

    return resolver, fs


def remote_value(path, size, index=None):
    key = Key.plain(path) if index is None else Key.chunk(path, index)
    return Value(key, size, backend=Backend.REMOTE, state=PersistState.PERSISTED)


@pytest.fixture
def store(memfs, resolver, executor):
    store = ObjectStore(resolver, executor, ICE_ROOT)
    yield store
    store.close()


def test_ice_root_is_created(store, memfs):
    assert memfs.isdir("/ice/ice10.0.0.1-54321")


@pytest.mark.parametrize("size", [0, 1, 1000])
def test_store_and_load(store, memfs, size):
    data = bytes(i % 251 for i in range(size))
    value = Value(Key.plain("frame/1"), size, mem=data)

    store.store(value)

    assert value.is_persisted
    assert memfs.cat(f"/ice/ice10.0.0.1-54321/{ice_name(value)}") == data
    assert store.load(value) == data


def test_store_loads_contents_first(store):
    value = Value(Key.plain("frame/2"), 3, loader=lambda v: b"abc")

    store.store(value)

    assert store.load(value) == b"abc"


def test_store_refuses_partial_contents(store, memfs, executor, sleep):
    value = Value(Key.plain("frame/3"), 4, mem=b"abc")

    with pytest.raises(ValueError):
        store.store(value)

    assert not value.is_persisted
    assert not memfs.exists(f"/ice/ice10.0.0.1-54321/{ice_name(value)}")
    assert not sleep.called


def test_store_requires_unpersisted_value(store):
    value = Value(Key.plain("frame/4"), 1, mem=b"a", state=PersistState.PERSISTED)

    with pytest.raises(AssertionError):
        store.store(value)


def test_store_requires_ice_root(resolver, executor):
    store = ObjectStore(resolver, executor)

    with pytest.raises(ValueError):
        store.store(Value(Key.plain("frame/5"), 1, mem=b"a"))

    with pytest.raises(ValueError):
        store.delete(Value(Key.plain("frame/5"), 1))


def test_delete(store, memfs):
    value = Value(Key.plain("frame/6"), 3, mem=b"abc")
    store.store(value)

    value.clear_persisted()
    store.delete(value)

    assert not memfs.exists(f"/ice/ice10.0.0.1-54321/{ice_name(value)}")


def test_delete_missing_object(store, sleep):
    store.delete(Value(Key.plain("frame/7"), 3))

    assert not sleep.called


def test_load_remote_file(memfs, resolver, executor):
    memfs.pipe("/data/small.csv", b"a,b\n1,2\n")
    store = ObjectStore(resolver, executor)

    assert store.load(remote_value("memory:///data/small.csv", 8)) == b"a,b\n1,2\n"


def test_load_remote_chunk(memfs, resolver, executor):
    memfs.pipe("/data/big.bin", bytes(CHUNK_SIZE) + b"0123456789")
    store = ObjectStore(resolver, executor)

    value = remote_value("memory:///data/big.bin", 10, index=1)

    assert store.path_for(value) == "memory:///data/big.bin"
    assert store.load(value) == b"0123456789"


def test_load_restarts_after_partial_read(executor, sleep):
    data = b"0123456789"
    resolver, fs = fake_resolver(FlakyStream(data, 4), io.BytesIO(data))
    store = ObjectStore(resolver, executor)

    assert store.load(remote_value("hdfs://namenode/file", 10)) == data

    assert fs.open.call_count == 2
    assert sleep.call_count == 1


def test_load_retries_short_reads(executor, sleep):
    resolver, fs = fake_resolver(io.BytesIO(b"012"), io.BytesIO(b"0123456789"))
    store = ObjectStore(resolver, executor)

    assert store.load(remote_value("hdfs://namenode/file", 10)) == b"0123456789"

    assert fs.open.call_count == 2
    assert sleep.call_count == 1


def test_load_skips_unseekable_streams(executor):
    data = bytes(CHUNK_SIZE) + b"abc"
    resolver, _ = fake_resolver(UnseekableStream(data))
    store = ObjectStore(resolver, executor)

    assert store.load(remote_value("hdfs://namenode/file", 3, index=1)) == b"abc"


def test_load_records_telemetry(memfs, resolver, executor):
    memfs.pipe("/data/small.csv", b"abc")
    store = ObjectStore(resolver, executor)

    store.load(remote_value("memory:///data/small.csv", 3))

    events = executor._timeline.snapshot()
    assert [(e.direction, e.size) for e in events] == [("read", 3)]


def test_store_and_delete_record_telemetry(store, executor):
    value = Value(Key.plain("frame/8"), 3, mem=b"abc")

    store.store(value)
    value.clear_persisted()
    store.delete(value)

    events = executor._timeline.snapshot()
    assert [(e.direction, e.size) for e in events] == [("write", 3), ("write", 0)]


def test_store_bytes(memfs, resolver, executor):
    store_bytes(executor, resolver, "memory:///exports/a/b/c.bin", b"xyz")

    assert memfs.cat("/exports/a/b/c.bin") == b"xyz"


def test_ice_root_is_exclusive(memfs, resolver, executor):
    first = ObjectStore(resolver, executor, ICE_ROOT)

    with pytest.raises(IceRootBusyError):
        ObjectStore(resolver, executor, ICE_ROOT)

    first.close()

    second = ObjectStore(resolver, executor, ICE_ROOT)
    second.close()


def test_ice_root_lock_file(memfs, config, resolver, executor):
    store = ObjectStore(resolver, executor, ICE_ROOT)

    try:
        lock_files = os.listdir(config.ice.lock_dir)
        assert len(lock_files) == 1
        assert lock_files[0].endswith(".lock")
    finally:
        store.close()


def test_ice_root_creation_failure(memfs, resolver, executor):
    with mock.patch.object(resolver, "resolve", side_effect=PermissionError("denied")):
        with pytest.raises(RemoteIOError) as exc_info:
            ObjectStore(resolver, executor, ICE_ROOT)

    assert exc_info.value.path == ICE_ROOT

    # Ownership was released again
    ObjectStore(resolver, executor, ICE_ROOT).close()
