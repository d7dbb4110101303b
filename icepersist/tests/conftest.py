"""Module with fixtures shared by the tests."""

from unittest import mock

import fsspec
import pytest

from icepersist.config import Config, IceConfig
from icepersist.filesystem import FileSystemResolver
from icepersist.retry import RetryExecutor
from icepersist.timeline import TimeLine


def _reset_memory_filesystem(fs):
    fs.store.clear()
    fs.pseudo_dirs.clear()
    fs.pseudo_dirs.append("")


@pytest.fixture
def memfs():
    fs = fsspec.filesystem("memory")
    _reset_memory_filesystem(fs)

    yield fs

    _reset_memory_filesystem(fs)


@pytest.fixture
def config(tmp_path):
    return Config(ice=IceConfig(lock_dir=str(tmp_path / "locks")))


@pytest.fixture
def resolver(config):
    return FileSystemResolver(config)


@pytest.fixture
def sleep():
    return mock.Mock()


@pytest.fixture
def executor(sleep):
    return RetryExecutor(timeline=TimeLine(), sleep=sleep)
