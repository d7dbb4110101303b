"""
Keys and value descriptors as seen by the persistence layer.

The byte encoding of keys belongs to the key-value store. This module only models the
parts the persistence layer relies on: whether a key addresses a chunk of a larger
remote object, which chunk that is, and where the remote path lives in the key bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import auto, Enum
import struct
import threading
from typing import Callable, Optional

from icepersist.constants import CHUNK_MARKER, KEY_PREFIX_LEN, LOG_CHUNK_SIZE

# Home byte used for chunk keys that are not pinned to a particular node.
_NO_HOME = 0xFF

_CHUNK_PREFIX = struct.Struct(">BBiI")


@dataclass(frozen=True)
class Key:
    """Immutable object identifier in its raw byte form."""

    kb: bytes

    @staticmethod
    def plain(name: str) -> Key:
        """Create a key that addresses an object directly by path or name."""
        return Key(name.encode("utf-8"))

    @staticmethod
    def chunk(parent_path: str, index: int, group: int = 0) -> Key:
        """Create a key for the chunk at the given index of a remote object."""
        if index < 0:
            raise ValueError(f"negative chunk index {index}")

        prefix = _CHUNK_PREFIX.pack(CHUNK_MARKER, _NO_HOME, group, index)
        return Key(prefix + parent_path.encode("utf-8"))

    @property
    def is_chunk(self) -> bool:
        return len(self.kb) >= KEY_PREFIX_LEN and self.kb[0] == CHUNK_MARKER

    @property
    def chunk_index(self) -> int:
        if not self.is_chunk:
            raise ValueError(f"{self} is not a chunk key")

        return _CHUNK_PREFIX.unpack_from(self.kb)[3]

    @property
    def chunk_offset(self) -> int:
        """Return the byte offset of a chunk within its parent, or 0 for plain keys."""
        if not self.is_chunk:
            return 0

        return self.chunk_index << LOG_CHUNK_SIZE

    def __str__(self) -> str:
        if self.is_chunk:
            body = self.kb[KEY_PREFIX_LEN:].decode("utf-8", errors="replace")
            return f"${self.chunk_index}${body}"
        else:
            return self.kb.decode("utf-8", errors="replace")


class PersistState(Enum):
    """Persistence status of a value."""

    NOT_PERSISTED = auto()
    PERSISTING = auto()
    PERSISTED = auto()


class Backend(Enum):
    """Where the persisted bytes of a value live."""

    # Under this node's ice root, written by the node itself.
    ICE = auto()

    # At the remote path encoded in the key, written by someone else.
    REMOTE = auto()


@dataclass(eq=False)
class Value:
    """
    Descriptor of a stored object.

    The persistence layer only reads the key and declared size, reads the in-memory
    buffer when storing, and marks the value as persisted after a successful store.
    """

    key: Key
    max: int
    backend: Backend = Backend.ICE
    mem: Optional[bytes] = None
    state: PersistState = PersistState.NOT_PERSISTED

    # Used by mem_or_load() when only a reference to the bytes is held.
    loader: Optional[Callable[[Value], bytes]] = field(default=None, repr=False)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def is_persisted(self) -> bool:
        return self.state is PersistState.PERSISTED

    def set_persisted(self) -> None:
        """Mark the value as written to the backend."""
        with self._lock:
            if self.state is PersistState.PERSISTED:
                raise ValueError(f"{self.key} is already persisted")

            self.state = PersistState.PERSISTED

    def clear_persisted(self) -> None:
        """Reset the status before the persisted copy is deleted."""
        with self._lock:
            self.state = PersistState.NOT_PERSISTED

    def mem_or_load(self) -> bytes:
        """Return the in-memory bytes, loading them first if necessary."""
        if self.mem is not None:
            return self.mem

        if self.loader is None:
            raise ValueError(f"{self.key} has neither contents nor a loader")

        self.mem = self.loader(self)
        return self.mem
