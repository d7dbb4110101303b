"""Module that discovers remote file trees and registers their files as objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol

from fsspec import AbstractFileSystem

from icepersist.filesystem.common import FileSystemResolver, RemoteIOError
from icepersist.logger import log
from icepersist.model import Key
from icepersist.paths import normalize_root


class Registrar(Protocol):
    """Registration callback of the key-value store for newly discovered files."""

    def register(self, path: str, length: int) -> Key:
        """Create a lazily loaded object for the remote file and return its key."""

    def flush(self) -> None:
        """Make all objects registered so far visible together."""


@dataclass
class ImportManifest:
    """Result of an import: keys of registered objects and failure descriptions."""

    keys: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    def merge(self, other: ImportManifest) -> ImportManifest:
        self.keys.extend(other.keys)
        self.failures.extend(other.failures)
        return self


class TreeImporter:
    """
    Recursively registers every file below a remote path.

    A directory that can't be listed doesn't abort the import. It is recorded as a
    failure and its siblings are imported as usual, so the caller gets everything that
    could be imported along with a list of what couldn't.
    """

    def __init__(self, resolver: FileSystemResolver, registrar: Registrar) -> None:
        self._resolver = resolver
        self._registrar = registrar

    def import_files(self, path: str) -> ImportManifest:
        """Import the file or directory tree at the given path."""
        log.info(f"importing {path}")

        try:
            fs, root = self._resolver.resolve(normalize_root(path))
            exists = fs.exists(root)
        except Exception as e:
            raise self._resolver.error(path, e) from e

        if not exists:
            return ImportManifest(failures=[f"Path does not exist: '{path}'"])

        return self._import_folder(fs, root)

    def import_file(self, uri: str) -> Key:
        """Register the single file at the given URI."""
        try:
            fs, p = self._resolver.resolve(uri)
            info = fs.info(p)
        except Exception as e:
            raise self._resolver.error(uri, e) from e

        if info.get("type") != "file":
            raise RemoteIOError(
                uri,
                self._resolver.config.describe(),
                IsADirectoryError(f"expected a single file, but got {info.get('type')}"),
            )

        key = self._registrar.register(fs.unstrip_protocol(info["name"]), info["size"])
        self._registrar.flush()

        return key

    def _import_folder(self, fs: AbstractFileSystem, path: str) -> ImportManifest:
        manifest = ImportManifest()
        subdirectories = []

        try:
            for entry in fs.ls(path, detail=True):
                name = entry["name"]

                if entry.get("type") == "directory":
                    # Some object stores list a directory as an entry of itself
                    if name.rstrip("/") != path.rstrip("/"):
                        subdirectories.append(name)
                else:
                    key = self._registrar.register(
                        fs.unstrip_protocol(name), entry.get("size") or 0
                    )
                    log.debug(f"registered {key}")
                    manifest.keys.append(str(key))
        except Exception as e:
            log.error(f"failed to import {path}: {e}")
            manifest.failures.append(f"{fs.unstrip_protocol(path)}: {e}")
            return manifest
        finally:
            # Publish the files of this directory in one go
            self._registrar.flush()

        for subdirectory in subdirectories:
            manifest.merge(self._import_folder(fs, subdirectory))

        return manifest
