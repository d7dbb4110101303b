"""Pure functions that map keys and values to remote paths."""

import re
from urllib.parse import quote

from icepersist.constants import ICE_DIR_PREFIX, KEY_PREFIX_LEN
from icepersist.model import Key, Value

# scheme://bucket without anything after the bucket name
_BARE_BUCKET = re.compile(r"^[a-z][a-z0-9+.-]*://[^/]+$", re.IGNORECASE)


def path_for_key(key: Key) -> str:
    """
    Return the remote path encoded in a key.

    Chunk keys carry the path of their parent object after the fixed-width prefix,
    plain keys are the path itself.
    """
    offset = KEY_PREFIX_LEN if key.is_chunk else 0
    return key.kb[offset:].decode("utf-8", errors="replace")


def ice_name(value: Value) -> str:
    """
    Return the name of a value's object under the ice root.

    Every byte outside the unreserved URL characters is percent-encoded, including
    '%' and '/', so distinct keys never map onto the same name and names never
    contain a path separator.
    """
    return quote(value.key.kb, safe="")


def ice_root(uri: str, address: str, port: int) -> str:
    """Return the ice directory of the node at the given address and port."""
    return f"{uri.rstrip('/')}/{ICE_DIR_PREFIX}{address}-{port}"


def join(root: str, name: str) -> str:
    return f"{root.rstrip('/')}/{name}"


def is_bare_bucket(path: str) -> bool:
    """Check if the path names a bucket without the trailing separator."""
    return _BARE_BUCKET.match(path) is not None


def normalize_root(path: str) -> str:
    """
    Append the separator to bare bucket paths.

    Some object store clients fail on listings of "s3://bucket" while accepting
    "s3://bucket/", and both mean the same thing.
    """
    if is_bare_bucket(path):
        return path + "/"
    else:
        return path
