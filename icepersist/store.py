"""Module that persists the node's own objects on the remote file system."""

import hashlib
import os
import posixpath
import threading
from typing import BinaryIO, Optional, Set

import fasteners

from icepersist.errors import PersistError
from icepersist.filesystem.common import FileSystemResolver
from icepersist.logger import log
from icepersist.model import Backend, Value
from icepersist.paths import ice_name, join, path_for_key
from icepersist.retry import RetryExecutor


class IceRootBusyError(PersistError):
    """Exception raised when another store on this host already owns the ice root."""


def _skip_fully(stream: BinaryIO, count: int) -> None:
    """Skip exactly count bytes of the stream or raise EOFError."""
    if count == 0:
        return

    if stream.seekable():
        stream.seek(count)
        return

    remaining = count
    while remaining > 0:
        skipped = len(stream.read(min(remaining, 1 << 20)))
        if skipped == 0:
            raise EOFError(f"end of stream after skipping {count - remaining} bytes")
        remaining -= skipped


def _read_fully(stream: BinaryIO, count: int) -> bytes:
    """Read exactly count bytes from the stream or raise EOFError."""
    buf = bytearray(count)
    view = memoryview(buf)
    pos = 0

    while pos < count:
        data = stream.read(count - pos)
        if not data:
            raise EOFError(f"end of stream after {pos} of {count} bytes")
        view[pos : pos + len(data)] = data
        pos += len(data)

    return bytes(buf)


def store_bytes(
    executor: RetryExecutor, resolver: FileSystemResolver, path: str, data: bytes
) -> None:
    """Write data to a remote path, creating parent directories, until it succeeds."""

    def write() -> None:
        fs, p = resolver.resolve(path)

        parent = posixpath.dirname(p)
        if parent:
            fs.makedirs(parent, exist_ok=True)

        with fs.open(p, "wb") as f:
            f.write(data)

    executor.run(write, read=False, size=len(data))


class ObjectStore:
    """
    Loads, stores and deletes values on the remote file system.

    Values of the node itself (Backend.ICE) are stored in the ice root, a directory that
    belongs to this node alone. The name of the object is derived from the key.

    Values that were imported from the remote file system (Backend.REMOTE) can only be
    loaded. Their key holds the remote path and, for chunk keys, the chunk index from
    which the byte offset within the remote object follows.

    All remote I/O goes through the retry executor, so calls only return once the
    operation has succeeded, however long that takes, or failed fatally.

    If an ice root is configured it is created right away and a lock file in the local
    lock directory makes sure that no other store on this host writes into it.
    """

    # Ice roots owned by stores of this process. File locks are per process, so they
    # don't keep two stores within the same process apart.
    _owned_roots: Set[str] = set()
    _owned_roots_lock = threading.Lock()

    def __init__(
        self,
        resolver: FileSystemResolver,
        executor: RetryExecutor,
        ice_root: Optional[str] = None,
    ) -> None:
        self._resolver = resolver
        self._executor = executor
        self._ice_root = ice_root
        self._lock: Optional[fasteners.InterProcessLock] = None

        if ice_root is not None:
            self._lock = self._acquire_root(ice_root)

            try:
                fs, p = resolver.resolve(ice_root)
                fs.makedirs(p, exist_ok=True)
            except Exception as e:
                self.close()
                raise resolver.error(ice_root, e) from e

            log.info(f"storing ice in {ice_root}")

    def _acquire_root(self, ice_root: str) -> fasteners.InterProcessLock:
        with ObjectStore._owned_roots_lock:
            if ice_root in ObjectStore._owned_roots:
                raise IceRootBusyError(f"ice root {ice_root} is already in use")

            ObjectStore._owned_roots.add(ice_root)

        try:
            return self._acquire_lock_file(ice_root)
        except BaseException:
            with ObjectStore._owned_roots_lock:
                ObjectStore._owned_roots.discard(ice_root)
            raise

    def _acquire_lock_file(self, ice_root: str) -> fasteners.InterProcessLock:
        lock_dir = self._resolver.config.ice.lock_dir
        os.makedirs(lock_dir, exist_ok=True)

        digest = hashlib.sha256(ice_root.encode("utf-8")).hexdigest()
        lock = fasteners.InterProcessLock(os.path.join(lock_dir, f"{digest}.lock"))

        if not lock.acquire(blocking=False):
            raise IceRootBusyError(f"ice root {ice_root} is in use by another process")

        return lock

    @property
    def ice_root(self) -> Optional[str]:
        return self._ice_root

    def close(self) -> None:
        """Release ownership of the ice root."""
        if self._lock is not None:
            self._lock.release()
            self._lock = None

            with ObjectStore._owned_roots_lock:
                ObjectStore._owned_roots.discard(self._ice_root)

    def path_for(self, value: Value) -> str:
        """Return the remote path at which the value is persisted."""
        if value.backend is Backend.ICE:
            return join(self._require_ice_root(), ice_name(value))
        else:
            return path_for_key(value.key)

    def load(self, value: Value) -> bytes:
        """
        Read the persisted bytes of the value.

        Opening, skipping to the chunk offset and reading happen as one unit, so an
        attempt that fails halfway starts over from the beginning of the object.
        """
        path = self.path_for(value)
        skip = value.key.chunk_offset if value.backend is Backend.REMOTE else 0

        def read() -> bytes:
            fs, p = self._resolver.resolve(path)

            with fs.open(p, "rb") as s:
                _skip_fully(s, skip)
                return _read_fully(s, value.max)

        data = self._executor.run(read, read=True, size=value.max)
        assert value.is_persisted
        return data

    def store(self, value: Value) -> None:
        """Write the value into the ice root and mark it as persisted."""
        self._require_ice_root()
        assert not value.is_persisted

        data = value.mem_or_load()

        # Never persist partial contents
        if len(data) != value.max:
            raise ValueError(
                f"refusing to store {len(data)} bytes for {value.key} of size {value.max}"
            )

        store_bytes(self._executor, self._resolver, self.path_for(value), data)
        value.set_persisted()

    def delete(self, value: Value) -> None:
        """Remove the value from the ice root. The caller has cleared its status."""
        self._require_ice_root()
        assert not value.is_persisted

        path = self.path_for(value)

        def delete() -> None:
            fs, p = self._resolver.resolve(path)

            try:
                fs.rm(p, recursive=True)
            except FileNotFoundError:
                log.debug(f"{path} was already deleted")

        self._executor.run(delete, read=False, size=0)

    def _require_ice_root(self) -> str:
        if self._ice_root is None:
            raise ValueError("no ice root configured for this store")

        return self._ice_root
