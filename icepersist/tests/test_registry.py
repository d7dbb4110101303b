from unittest import mock

import pytest

from icepersist.constants import CHUNK_SIZE
from icepersist.model import Backend, Key
from icepersist.registry import ObjectRegistry


def test_registration_visible_after_flush():
    registry = ObjectRegistry()

    key = registry.register("hdfs://nn/data/a.csv", 123)

    assert key == Key.plain("hdfs://nn/data/a.csv")
    assert registry.get(key) is None
    assert len(registry) == 0

    registry.flush()

    value = registry.get(key)

    assert value.max == 123
    assert value.backend is Backend.REMOTE
    assert value.is_persisted
    assert registry.keys() == [key]


def test_reregistration_replaces_value():
    registry = ObjectRegistry()

    registry.register("s3://b/a", 1)
    registry.register("s3://b/a", 2)
    registry.flush()

    assert len(registry) == 1
    assert registry.get(Key.plain("s3://b/a")).max == 2


def test_values_load_through_loader():
    loader = mock.Mock(return_value=b"abc")
    registry = ObjectRegistry(loader=loader)

    key = registry.register("s3://b/a", 3)
    registry.flush()

    value = registry.get(key)

    assert value.mem_or_load() == b"abc"
    assert value.mem_or_load() == b"abc"
    loader.assert_called_once_with(value)


def test_chunks():
    registry = ObjectRegistry()

    key = registry.register("s3://b/big", 2 * CHUNK_SIZE + 5)
    registry.flush()

    chunks = registry.chunks(key)

    assert [c.key.chunk_index for c in chunks] == [0, 1, 2]
    assert [c.max for c in chunks] == [CHUNK_SIZE, CHUNK_SIZE, 5]
    assert [c.key.chunk_offset for c in chunks] == [0, CHUNK_SIZE, 2 * CHUNK_SIZE]
    assert all(str(c.key).endswith("$s3://b/big") for c in chunks)


def test_chunks_of_empty_file():
    registry = ObjectRegistry()

    key = registry.register("s3://b/empty", 0)
    registry.flush()

    chunks = registry.chunks(key)

    assert len(chunks) == 1
    assert chunks[0].max == 0


def test_chunks_of_unknown_key():
    with pytest.raises(KeyError):
        ObjectRegistry().chunks(Key.plain("s3://b/nothing"))
