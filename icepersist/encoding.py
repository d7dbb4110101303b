"""
Serialization of telemetry and command results for export.

I/O events and import manifests are plain dataclasses. They are exported either as
MessagePack, which is compact enough to ship telemetry snapshots between nodes, or as
JSON for operators and scripts that consume the command-line output.
"""

from dataclasses import is_dataclass
import json
import typing
from typing import Any, Dict, IO, List

import msgpack


class Encoding:
    """Serialization and deserialization of dataclasses using JSON or MessagePack."""

    def __init__(self, *dataclasses: type):
        """Initialize a (de)serializer with support for the given dataclass types."""
        self._dataclasses: Dict[str, type] = {}

        for dataclass in dataclasses:
            self.register_dataclasses(dataclass)

    def register_dataclasses(self, seed_type: type) -> None:
        """Register the dataclass and all dataclass types nested within it."""
        for dataclass in self._discover_dataclasses(seed_type):
            self._dataclasses[dataclass.__qualname__] = dataclass

    def pack(self, obj: Any) -> bytes:
        """Serialize an object using MessagePack."""
        return msgpack.packb(obj, default=self.serialize_obj)

    def unpack(self, data: bytes) -> Any:
        """Deserialize an object using MessagePack."""
        return msgpack.unpackb(data, object_hook=self.deserialize_obj)

    def dump_json(self, obj: Any, fp: IO[str]) -> None:
        """Serialize an object to JSON."""
        json.dump(obj, fp, default=self.serialize_obj)

    def load_json(self, fp: IO[str]) -> Any:
        """Deserialize an object from JSON."""
        return json.load(fp, object_hook=self.deserialize_obj)

    def serialize_obj(self, obj: Any) -> Any:
        """Turn a dataclass into a serialization friendly representation."""
        if obj.__class__.__qualname__ in self._dataclasses:
            return {"__data__": {"type": obj.__class__.__qualname__, "data": obj.__dict__}}
        else:
            raise ValueError(f"unserializable object {obj}")

    def deserialize_obj(self, obj: Any) -> Any:
        """Reconstruct a dataclass from a serialized representation."""
        if isinstance(obj, dict) and "__data__" in obj:
            return self._deserialize_dataclass(obj)
        else:
            return obj

    def _deserialize_dataclass(self, obj: Dict) -> Any:
        """Reconstruct a previously registered dataclass type."""
        type_name = obj["__data__"]["type"]
        type_data = obj["__data__"]["data"]

        if type_name in self._dataclasses:
            try:
                return self._dataclasses[type_name](**type_data)
            except Exception as e:
                raise TypeError(f"failed to deserialize {type_name}: {e}")
        else:
            raise TypeError(f"unknown dataclass '{type_name}'")

    @staticmethod
    def _discover_dataclasses(*seed_types: type) -> List[type]:
        """Find the dataclass types used by the given types, including nested ones."""
        candidates = set(seed_types)
        explored = set()
        dataclasses = set()

        while len(candidates) > 0:
            candidate = candidates.pop()

            if candidate in explored:
                continue

            explored.add(candidate)

            if is_dataclass(candidate):
                dataclasses.add(candidate)

                for subtype in typing.get_type_hints(candidate).values():
                    candidates.add(subtype)
            else:
                # Types nested in constructs like Optional[T] and List[T]
                for subtype in typing.get_args(candidate):
                    candidates.add(subtype)

        return list(dataclasses)
