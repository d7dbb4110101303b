"""Module that ties the persistence components together into a single backend."""

from abc import ABC, abstractmethod
import socket
from typing import Optional

from icepersist.config import Config
from icepersist.filesystem import FileSystemResolver, RemoteFileSystem
from icepersist.importer import ImportManifest, Registrar, TreeImporter
from icepersist.model import Key, Value
from icepersist.paths import ice_root
from icepersist.registry import ObjectRegistry
from icepersist.retry import RetryExecutor
from icepersist.store import ObjectStore
from icepersist.timeline import TimeLine, timeline as default_timeline


class Persist(ABC):
    """Interface of a persistence backend as used by the key-value store."""

    @abstractmethod
    def load(self, value: Value) -> bytes:
        """Read the persisted bytes of a value."""

    @abstractmethod
    def store(self, value: Value) -> None:
        """Persist the bytes of a value that is not persisted yet."""

    @abstractmethod
    def delete(self, value: Value) -> None:
        """Delete the persisted copy of a value whose status was cleared."""

    @abstractmethod
    def import_files(self, path: str) -> ImportManifest:
        """Register all files below a path as objects."""


class PersistRemote(Persist):
    """
    Persistence backend on top of a remote file system like HDFS or S3.

    Without an ice URI the backend only loads imported remote files. With one, it also
    stores the node's own values in the directory "<ice_uri>/ice<address>-<port>".

    Example:
    ```
    config = Config.create(default_fs="hdfs://namenode:8020")
    backend = PersistRemote(config, ice_uri="hdfs://namenode:8020/h2o", port=54321)
    backend.store(value)
    ```
    """

    def __init__(
        self,
        config: Config,
        ice_uri: Optional[str] = None,
        address: Optional[str] = None,
        port: int = 0,
        registrar: Optional[Registrar] = None,
        executor: Optional[RetryExecutor] = None,
        timeline: TimeLine = default_timeline,
    ) -> None:
        self._config = config
        self._resolver = FileSystemResolver(config)

        if executor is None:
            executor = RetryExecutor.from_config(config.retry, timeline)
        self._executor = executor

        ice_uri = ice_uri or config.ice.uri
        root = None

        if ice_uri is not None:
            root = ice_root(ice_uri, address or _self_address(), port)

        self._store = ObjectStore(self._resolver, self._executor, root)

        if registrar is None:
            registrar = ObjectRegistry(loader=self._store.load)
        self._registrar = registrar

        self._importer = TreeImporter(self._resolver, self._registrar)
        self._filesystem = RemoteFileSystem(self._resolver)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def filesystem(self) -> RemoteFileSystem:
        """User-facing file system operations that fail fast."""
        return self._filesystem

    @property
    def registrar(self) -> Registrar:
        return self._registrar

    @property
    def ice_root(self) -> Optional[str]:
        return self._store.ice_root

    def load(self, value: Value) -> bytes:
        return self._store.load(value)

    def store(self, value: Value) -> None:
        self._store.store(value)

    def delete(self, value: Value) -> None:
        self._store.delete(value)

    def import_files(self, path: str) -> ImportManifest:
        return self._importer.import_files(path)

    def import_file(self, uri: str) -> Key:
        return self._importer.import_file(uri)

    def close(self) -> None:
        self._store.close()

    def __enter__(self) -> "PersistRemote":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _self_address() -> str:
    """Return the address other nodes know this one by."""
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return "127.0.0.1"
