"""Module that contains the remote file system facade used by import/export features."""

import posixpath
from typing import BinaryIO, List, Optional

from icepersist.filesystem.common import (
    FileSystemResolver,
    modification_millis,
    PersistEntry,
)
from icepersist.logger import log


class RemoteFileSystem:
    """
    Class that forwards user-initiated calls to the remote file system.

    None of these calls are retried. The user is waiting for the result and is better
    served by a prompt error that names the path and configuration than by a call that
    silently hangs. Every failure of the underlying client is raised as RemoteIOError.
    """

    def __init__(self, resolver: FileSystemResolver) -> None:
        self._resolver = resolver

    #
    # Metadata access
    #

    def exists(self, path: str) -> bool:
        try:
            fs, p = self._resolver.resolve(path)
            return fs.exists(p)
        except Exception as e:
            raise self._resolver.error(path, e) from e

    def list(self, path: str) -> List[PersistEntry]:
        try:
            fs, p = self._resolver.resolve(path)

            return [
                PersistEntry(
                    name=posixpath.basename(info["name"].rstrip("/")),
                    size=info.get("size") or 0,
                    timestamp_millis=modification_millis(info),
                )
                for info in fs.ls(p, detail=True)
            ]
        except Exception as e:
            raise self._resolver.error(path, e) from e

    def length(self, path: str) -> int:
        try:
            fs, p = self._resolver.resolve(path)
            return fs.info(p)["size"] or 0
        except Exception as e:
            raise self._resolver.error(path, e) from e

    def home_directory(self) -> Optional[str]:
        try:
            return self._resolver.home_directory()
        except Exception as e:
            log.debug(f"unable to determine home directory: {e}")
            return None

    #
    # File operations
    #

    def open(self, path: str) -> BinaryIO:
        """Open a remote file for reading. The caller closes the stream."""
        try:
            fs, p = self._resolver.resolve(path)
            return fs.open(p, "rb")
        except Exception as e:
            raise self._resolver.error(path, e) from e

    def create(self, path: str, overwrite: bool = True) -> BinaryIO:
        """Open a remote file for writing. The caller closes the stream."""
        try:
            fs, p = self._resolver.resolve(path)

            if not overwrite and fs.exists(p):
                raise FileExistsError(p)

            return fs.open(p, "wb")
        except Exception as e:
            raise self._resolver.error(path, e) from e

    #
    # File system structure
    #

    def mkdirs(self, path: str) -> bool:
        try:
            fs, p = self._resolver.resolve(path)
            fs.makedirs(p, exist_ok=True)
            return True
        except Exception as e:
            raise self._resolver.error(path, e) from e

    def rename(self, old: str, new: str) -> bool:
        """
        Move a file or directory, replacing anything that exists at the destination.

        Returns False without renaming if the existing destination can't be removed.
        """
        try:
            fs, src = self._resolver.resolve(old)
            _, dst = self._resolver.resolve(new)

            if fs.exists(dst):
                try:
                    fs.rm(dst, recursive=True)
                except Exception as e:
                    log.info(f"rename failed ({old} -> {new}): {e}")
                    return False

            fs.mv(src, dst, recursive=True)
            return True
        except Exception as e:
            raise self._resolver.error(new, e) from e

    def delete(self, path: str) -> bool:
        """Delete a file or directory tree, returning False if there was none."""
        try:
            fs, p = self._resolver.resolve(path)
            fs.rm(p, recursive=True)
            return True
        except FileNotFoundError:
            return False
        except Exception as e:
            raise self._resolver.error(path, e) from e
