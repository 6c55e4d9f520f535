"""
Generic value tree produced by the decoder and consumed by the encoder.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class Kind(str, Enum):
    ABSENT = "absent"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    STRING = "string"
    BYTES = "bytes"
    ENUM = "enum"
    MESSAGE = "message"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class Value:
    """A tagged value.

    ``data`` holds, per kind: ``None`` (absent), ``bool``, ``int`` (int, uint, enum),
    ``float``, ``str``, ``bytes``, ``dict[int, Value]`` (message, keyed by field number),
    ``tuple[Value, ...]`` (list) or ``dict[Value, Value]`` (map, insertion ordered).
    """

    kind: Kind
    data: Any = None

    def __hash__(self) -> int:
        # Only scalar values are used as map keys.
        return hash((self.kind, self.data))

    @property
    def fields(self) -> dict[int, "Value"]:
        if self.kind is not Kind.MESSAGE:
            raise TypeError(f"{self.kind.value} value has no fields")
        return self.data

    def get(self, number: int) -> Optional["Value"]:
        return self.fields.get(number)

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {self.data!r})"


ABSENT = Value(Kind.ABSENT)


def boolean(v: bool) -> Value:
    return Value(Kind.BOOL, bool(v))


def int_(v: int) -> Value:
    return Value(Kind.INT, int(v))


def uint(v: int) -> Value:
    return Value(Kind.UINT, int(v))


def float_(v: float) -> Value:
    return Value(Kind.FLOAT, float(v))


def string(v: str) -> Value:
    return Value(Kind.STRING, v)


def bytes_(v: bytes) -> Value:
    return Value(Kind.BYTES, bytes(v))


def enum(v: int) -> Value:
    return Value(Kind.ENUM, int(v))


def message(fields: Optional[Mapping[int, Value]] = None) -> Value:
    return Value(Kind.MESSAGE, dict(fields or {}))


def list_(items: Iterable[Value] = ()) -> Value:
    return Value(Kind.LIST, tuple(items))


def map_(entries: Optional[Iterable[tuple[Value, Value]]] = None) -> Value:
    return Value(Kind.MAP, dict(entries or ()))
