"""
Modules that give access to remote file systems.

icepersist does not talk to HDFS, S3 or any other storage system itself. It relies on
fsspec to turn a URL like "hdfs://namenode/data" or "s3://bucket/key" into a file
system object with a common interface, and adds two things on top:

* Resolution from one shared, read-only configuration. Paths without a scheme are
resolved against the configured default file system and storage options (endpoints,
credentials) are looked up per protocol, so callers only ever deal in path strings.
* A single error type. Whatever the client library raises is wrapped into a
RemoteIOError that carries the path and the configuration that was in effect, which is
usually what an operator needs to figure out what went wrong.

The RemoteFileSystem facade in this package serves user-initiated operations like
browsing and exporting and deliberately doesn't retry anything. Retrying for the
node's own data lives in icepersist.retry and icepersist.store instead.
"""

from .common import FileSystemResolver, PersistEntry, RemoteIOError
from .filesystem import RemoteFileSystem

__all__ = [
    "FileSystemResolver",
    "PersistEntry",
    "RemoteFileSystem",
    "RemoteIOError",
]
