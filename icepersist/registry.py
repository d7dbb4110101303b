"""
In-process registry of remote objects discovered by imports.

This is the minimal key-value store surface the importer needs: registering a remote
file as an object that is loaded on demand. Registrations are staged and only become
visible on flush(), so a directory full of files costs one round of synchronization
instead of one per file.
"""

import threading
from typing import Callable, Dict, List, Optional

from icepersist.constants import CHUNK_SIZE
from icepersist.model import Backend, Key, PersistState, Value


class ObjectRegistry:
    """Thread-safe map from keys to values of imported remote files."""

    def __init__(self, loader: Optional[Callable[[Value], bytes]] = None) -> None:
        self._loader = loader

        self._values: Dict[Key, Value] = {}
        self._pending: Dict[Key, Value] = {}
        self._lock = threading.Lock()

    def register(self, path: str, length: int) -> Key:
        """Stage a remote file of the given length and return its key."""
        key = Key.plain(path)
        value = Value(
            key=key,
            max=length,
            backend=Backend.REMOTE,
            state=PersistState.PERSISTED,
            loader=self._loader,
        )

        with self._lock:
            self._pending[key] = value

        return key

    def flush(self) -> None:
        """Publish all staged registrations at once."""
        with self._lock:
            self._values.update(self._pending)
            self._pending.clear()

    def get(self, key: Key) -> Optional[Value]:
        with self._lock:
            return self._values.get(key)

    def keys(self) -> List[Key]:
        with self._lock:
            return list(self._values)

    def chunks(self, key: Key) -> List[Value]:
        """Return value descriptors for the fixed-size chunks of a registered file."""
        value = self.get(key)
        if value is None:
            raise KeyError(str(key))

        path = key.kb.decode("utf-8")
        count = max(1, -(-value.max // CHUNK_SIZE))

        return [
            Value(
                key=Key.chunk(path, index),
                max=min(CHUNK_SIZE, value.max - index * CHUNK_SIZE),
                backend=Backend.REMOTE,
                state=PersistState.PERSISTED,
                loader=self._loader,
            )
            for index in range(count)
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
