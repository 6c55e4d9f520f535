"""
Protobuf wire format primitives: varints, zig-zag, fixed-width values and tags.
"""

import struct
from enum import IntEnum
from typing import Optional

from protodyn.errors import MalformedWireDataError

MAX_VARINT_BYTES = 10
MAX_FIELD_NUMBER = (1 << 29) - 1
MAX_DEPTH = 100

_MASK_32 = (1 << 32) - 1
_MASK_64 = (1 << 64) - 1


class WireType(IntEnum):
    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    FIXED32 = 5


# --- integer transforms ---

def zigzag_encode(value: int, bits: int = 64) -> int:
    return ((value << 1) ^ (value >> (bits - 1))) & ((1 << bits) - 1)


def zigzag_decode(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


def to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


# --- writing ---

def encode_varint(value: int) -> bytes:
    """Base-128 encode ``value``; negative numbers are sign-extended to 64 bits."""
    if value < 0:
        value &= _MASK_64
    out = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            return bytes(out)


def encode_tag(number: int, wire_type: WireType) -> bytes:
    return encode_varint((number << 3) | int(wire_type))


def encode_fixed32(value: int) -> bytes:
    return struct.pack("<I", value & _MASK_32)


def encode_fixed64(value: int) -> bytes:
    return struct.pack("<Q", value & _MASK_64)


def encode_float(value: float) -> bytes:
    return struct.pack("<f", value)


def encode_double(value: float) -> bytes:
    return struct.pack("<d", value)


def encode_length_delimited(payload: bytes) -> bytes:
    return encode_varint(len(payload)) + payload


# --- reading ---

class Reader:
    """Bounded cursor over a byte buffer. All reads fail with MalformedWireDataError past the end."""

    def __init__(self, data: bytes, start: int = 0, end: Optional[int] = None):
        self._buf = data
        self._data = memoryview(data)
        self.pos = start
        self.end = len(data) if end is None else end

    def at_end(self) -> bool:
        return self.pos >= self.end

    def read_varint(self) -> int:
        result = 0
        shift = 0
        start = self.pos
        for _ in range(MAX_VARINT_BYTES):
            if self.pos >= self.end:
                raise MalformedWireDataError("truncated varint", offset=start)
            byte = self._data[self.pos]
            self.pos += 1
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result & _MASK_64
            shift += 7
        raise MalformedWireDataError("varint exceeds 10 bytes", offset=start)

    def read_tag(self) -> tuple[int, int]:
        offset = self.pos
        key = self.read_varint()
        number, wire_type = key >> 3, key & 0x07
        if number == 0 or number > MAX_FIELD_NUMBER:
            raise MalformedWireDataError(f"invalid field number {number}", offset=offset)
        return number, wire_type

    def read_bytes(self, size: int) -> bytes:
        if size < 0 or self.pos + size > self.end:
            raise MalformedWireDataError(
                f"field needs {size} bytes, {self.end - self.pos} remaining", offset=self.pos
            )
        chunk = bytes(self._data[self.pos:self.pos + size])
        self.pos += size
        return chunk

    def read_fixed32(self) -> int:
        return struct.unpack("<I", self.read_bytes(4))[0]

    def read_fixed64(self) -> int:
        return struct.unpack("<Q", self.read_bytes(8))[0]

    def read_float(self) -> float:
        return struct.unpack("<f", self.read_bytes(4))[0]

    def read_double(self) -> float:
        return struct.unpack("<d", self.read_bytes(8))[0]

    def read_length_delimited(self) -> bytes:
        return self.read_bytes(self.read_varint())

    def sub_reader(self) -> "Reader":
        """Consume a length-delimited field and return a reader over its contents."""
        size = self.read_varint()
        if self.pos + size > self.end:
            raise MalformedWireDataError(
                f"length {size} exceeds {self.end - self.pos} remaining bytes", offset=self.pos
            )
        sub = Reader(self._buf, self.pos, self.pos + size)
        self.pos += size
        return sub

    def skip(self, number: int, wire_type: int, depth: int = 0) -> None:
        """Skip the value of a field whose tag has just been read."""
        if wire_type == WireType.VARINT:
            self.read_varint()
        elif wire_type == WireType.FIXED64:
            self.read_bytes(8)
        elif wire_type == WireType.LENGTH_DELIMITED:
            self.read_length_delimited()
        elif wire_type == WireType.FIXED32:
            self.read_bytes(4)
        elif wire_type == WireType.START_GROUP:
            if depth >= MAX_DEPTH:
                raise MalformedWireDataError(f"group nesting exceeds {MAX_DEPTH} levels", offset=self.pos)
            while True:
                if self.at_end():
                    raise MalformedWireDataError(f"unterminated group {number}", offset=self.pos)
                inner_number, inner_type = self.read_tag()
                if inner_type == WireType.END_GROUP:
                    if inner_number != number:
                        raise MalformedWireDataError(
                            f"end group {inner_number} does not match start group {number}", offset=self.pos
                        )
                    return
                self.skip(inner_number, inner_type, depth + 1)
        else:
            raise MalformedWireDataError(f"cannot skip wire type {wire_type}", offset=self.pos)
