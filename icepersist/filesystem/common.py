"""Data structures and helpers used by multiple remote file system components."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import getpass
import os
from typing import Any, Dict, Optional, Tuple

from fsspec import AbstractFileSystem
from fsspec.core import split_protocol, url_to_fs

from icepersist.config import Config
from icepersist.errors import PersistError

# Protocols of default file systems that mean the local disk
_LOCAL_PROTOCOLS = (None, "file", "local")


class RemoteIOError(PersistError):
    """
    Exception raised when a remote file system call fails.

    Carries the path that was being accessed and the active configuration, because
    most of these failures come down to a misconfigured endpoint or credentials.
    """

    def __init__(self, path: str, config: str, cause: BaseException) -> None:
        super().__init__(f"remote i/o error on {path}: {cause} (config: {config})")

        self.path = path
        self.config = config
        self.cause = cause


@dataclass
class PersistEntry:
    """Listing entry of a remote directory."""

    name: str
    size: int
    timestamp_millis: int


class FileSystemResolver:
    """
    Resolves path strings to fsspec file system instances.

    Resolution happens per call and is cheap because fsspec caches file system
    instances by protocol and storage options. The configuration is only read.
    """

    def __init__(self, config: Config) -> None:
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    def qualify(self, path: str) -> str:
        """Prefix scheme-less paths with the configured default file system."""
        protocol, _ = split_protocol(path)
        default_fs = self._config.remote.default_fs

        if protocol is None and default_fs:
            # Keep the separator of authority-less file systems like "file:///"
            fs_protocol, authority = split_protocol(default_fs)
            prefix = f"{fs_protocol}://" if fs_protocol else ""

            return f"{prefix}{authority.rstrip('/')}/{path.lstrip('/')}"
        else:
            return path

    def resolve(self, path: str) -> Tuple[AbstractFileSystem, str]:
        """Return the file system for a path along with the path as it understands it."""
        qualified = self.qualify(path)
        protocol, _ = split_protocol(qualified)

        return url_to_fs(qualified, **self._config.options_for(protocol or "file"))

    def error(self, path: str, cause: BaseException) -> RemoteIOError:
        """Wrap a failure of a call on the given path with diagnostic context."""
        return RemoteIOError(path, self._config.describe(), cause)

    def home_directory(self) -> str:
        """
        Return the user's home directory on the default file system.

        Without a default file system that is the local file system, where the home
        directory is the one of the current user. Cluster file systems like HDFS keep
        home directories under /user.
        """
        if self._config.remote.home_directory:
            return self._config.remote.home_directory

        default_fs = self._config.remote.default_fs
        protocol, _ = split_protocol(default_fs) if default_fs else (None, None)

        if protocol in _LOCAL_PROTOCOLS:
            return f"file://{os.path.expanduser('~')}"
        else:
            return self.qualify(f"/user/{getpass.getuser()}")


def modification_millis(info: Dict[str, Any]) -> int:
    """
    Extract the modification time from a listing entry in milliseconds.

    Every fsspec implementation names and types this field differently.
    """
    for name in ("mtime", "LastModified", "last_modified", "updated", "created"):
        value: Optional[Any] = info.get(name)

        if value is None:
            continue
        elif isinstance(value, datetime):
            return int(value.timestamp() * 1000)
        elif isinstance(value, (int, float)):
            return int(value * 1000)
        elif isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                continue

            return int(parsed.timestamp() * 1000)

    return 0
