"""
Dynamic codec — decodes wire bytes into a generic Value tree and encodes it back,
driven entirely by runtime descriptors.
"""

import math
import struct
from typing import Any, Mapping

from protodyn import wire
from protodyn.descriptors import INT_RANGES, FieldDescriptor, FieldType, MessageDescriptor
from protodyn.errors import EncodeError, MalformedWireDataError
from protodyn.values import Kind, Value
from protodyn.wire import Reader, WireType


# --- decode ---

def decode(data: bytes, descriptor: MessageDescriptor) -> Value:
    """Decode ``data`` as an instance of ``descriptor``.

    Unknown fields are skipped. Raises MalformedWireDataError on corrupt input.
    """
    return _decode_message(Reader(data), descriptor)


def _decode_message(reader: Reader, descriptor: MessageDescriptor, depth: int = 0) -> Value:
    if depth > wire.MAX_DEPTH:
        raise MalformedWireDataError(f"message nesting exceeds {wire.MAX_DEPTH} levels", offset=reader.pos)
    fields: dict[int, Value] = {}
    while not reader.at_end():
        number, wire_type = reader.read_tag()
        f = descriptor.field_by_number.get(number)
        if f is None:
            reader.skip(number, wire_type)
            continue

        if f.is_map:
            if wire_type != WireType.LENGTH_DELIMITED:
                reader.skip(number, wire_type)
                continue
            key, value = _decode_map_entry(reader.sub_reader(), f, depth)
            entries = fields[number].data if number in fields else {}
            entries[key] = value
            fields[number] = Value(Kind.MAP, entries)
        elif f.is_repeated:
            if wire_type == WireType.LENGTH_DELIMITED and f.type.packable:
                sub = reader.sub_reader()
                items = []
                while not sub.at_end():
                    items.append(_decode_scalar(sub, f))
            elif wire_type == f.type.wire_type:
                items = [_decode_single(reader, f, depth)]
            else:
                reader.skip(number, wire_type)
                continue
            previous = fields[number].data if number in fields else ()
            fields[number] = Value(Kind.LIST, previous + tuple(items))
        else:
            if wire_type != f.type.wire_type:
                reader.skip(number, wire_type)
                continue
            value = _decode_single(reader, f, depth)
            existing = fields.get(number)
            if existing is not None and value.kind is Kind.MESSAGE:
                value = _merge(existing, value)
            oneof = descriptor.oneof_of(f)
            if oneof is not None:
                for member in oneof.fields:
                    fields.pop(member.number, None)
            fields[number] = value

    for f in descriptor.fields:
        v = fields.get(f.number)
        if v is not None and not f.has_presence and not f.is_repeated and not f.is_map and _is_default(v):
            del fields[f.number]
    return Value(Kind.MESSAGE, fields)


def _decode_single(reader: Reader, f: FieldDescriptor, depth: int) -> Value:
    if f.type is FieldType.MESSAGE:
        return _decode_message(reader.sub_reader(), f.message_type, depth + 1)
    if f.type is FieldType.STRING:
        offset = reader.pos
        raw = reader.read_length_delimited()
        try:
            return Value(Kind.STRING, raw.decode("utf-8"))
        except UnicodeDecodeError:
            raise MalformedWireDataError(f"field {f.name!r} is not valid UTF-8", offset=offset) from None
    if f.type is FieldType.BYTES:
        return Value(Kind.BYTES, reader.read_length_delimited())
    return _decode_scalar(reader, f)


def _decode_scalar(reader: Reader, f: FieldDescriptor) -> Value:
    t = f.type
    if t is FieldType.DOUBLE:
        return Value(Kind.FLOAT, reader.read_double())
    if t is FieldType.FLOAT:
        return Value(Kind.FLOAT, reader.read_float())
    if t is FieldType.FIXED32:
        return Value(Kind.UINT, reader.read_fixed32())
    if t is FieldType.FIXED64:
        return Value(Kind.UINT, reader.read_fixed64())
    if t is FieldType.SFIXED32:
        return Value(Kind.INT, wire.to_signed(reader.read_fixed32(), 32))
    if t is FieldType.SFIXED64:
        return Value(Kind.INT, wire.to_signed(reader.read_fixed64(), 64))

    raw = reader.read_varint()
    if t is FieldType.BOOL:
        return Value(Kind.BOOL, raw != 0)
    if t is FieldType.INT32:
        return Value(Kind.INT, wire.to_signed(raw, 32))
    if t is FieldType.INT64:
        return Value(Kind.INT, wire.to_signed(raw, 64))
    if t is FieldType.UINT32:
        return Value(Kind.UINT, raw & 0xFFFFFFFF)
    if t is FieldType.UINT64:
        return Value(Kind.UINT, raw)
    if t is FieldType.SINT32:
        return Value(Kind.INT, wire.zigzag_decode(raw & 0xFFFFFFFF))
    if t is FieldType.SINT64:
        return Value(Kind.INT, wire.zigzag_decode(raw))
    if t is FieldType.ENUM:
        return Value(Kind.ENUM, wire.to_signed(raw, 32))
    raise MalformedWireDataError(f"field {f.name!r} has non-scalar type {t.name}")


def _decode_map_entry(reader: Reader, f: FieldDescriptor, depth: int) -> tuple[Value, Value]:
    entry = _decode_message(reader, f.message_type, depth + 1).data
    key_field, value_field = f.map_key, f.map_value
    key = entry.get(key_field.number) or default_value(key_field)
    value = entry.get(value_field.number) or default_value(value_field)
    return key, value


def _merge(base: Value, update: Value) -> Value:
    merged = dict(base.data)
    for number, v in update.data.items():
        old = merged.get(number)
        if old is None:
            merged[number] = v
        elif v.kind is Kind.LIST:
            merged[number] = Value(Kind.LIST, old.data + v.data)
        elif v.kind is Kind.MAP:
            merged[number] = Value(Kind.MAP, {**old.data, **v.data})
        elif v.kind is Kind.MESSAGE:
            merged[number] = _merge(old, v)
        else:
            merged[number] = v
    return Value(Kind.MESSAGE, merged)


def default_value(f: FieldDescriptor) -> Value:
    """The zero value of a singular field."""
    t = f.type
    if t is FieldType.MESSAGE:
        return Value(Kind.MESSAGE, {})
    if t is FieldType.BOOL:
        return Value(Kind.BOOL, False)
    if t is FieldType.STRING:
        return Value(Kind.STRING, "")
    if t is FieldType.BYTES:
        return Value(Kind.BYTES, b"")
    if t.kind is Kind.FLOAT:
        return Value(Kind.FLOAT, 0.0)
    return Value(t.kind, 0)


def _is_default(v: Value) -> bool:
    if v.kind is Kind.MESSAGE:
        return False
    if v.kind is Kind.FLOAT:
        # -0.0 is significant
        return v.data == 0 and math.copysign(1.0, v.data) > 0
    return not v.data


# --- encode ---

def encode(value: Value, descriptor: MessageDescriptor) -> bytes:
    """Encode a MESSAGE value. Fields are written in ascending field number order.

    Raises EncodeError when the value does not fit the descriptor.
    """
    if not isinstance(value, Value) or value.kind is not Kind.MESSAGE:
        raise EncodeError(f"{descriptor.full_name}: expected a message value, got {value!r}")
    return _encode_message(value, descriptor)


def _encode_message(value: Value, descriptor: MessageDescriptor) -> bytes:
    present = {n: v for n, v in value.data.items() if v.kind is not Kind.ABSENT}
    for number in present:
        if number not in descriptor.field_by_number:
            raise EncodeError(f"{descriptor.full_name} has no field number {number}")
    for oneof in descriptor.oneofs:
        members = [f.name for f in oneof.fields if f.number in present]
        if len(members) > 1:
            raise EncodeError(
                f"{descriptor.full_name}: oneof {oneof.name!r} has more than one member set ({', '.join(members)})",
                field=oneof.name,
            )

    out = bytearray()
    for f in sorted(descriptor.fields, key=lambda fd: fd.number):
        v = present.get(f.number)
        if v is not None:
            out += _encode_field(v, f, force=descriptor.map_entry)
    return bytes(out)


def _encode_field(v: Value, f: FieldDescriptor, force: bool = False) -> bytes:
    if f.is_map:
        _expect(v, Kind.MAP, f)
        out = bytearray()
        for key, item in v.data.items():
            entry = _encode_field(key, f.map_key, force=True) + _encode_field(item, f.map_value, force=True)
            out += wire.encode_tag(f.number, WireType.LENGTH_DELIMITED) + wire.encode_length_delimited(entry)
        return bytes(out)

    if f.is_repeated:
        _expect(v, Kind.LIST, f)
        if f.packed:
            if not v.data:
                return b""
            body = b"".join(_encode_payload(item, f) for item in v.data)
            return wire.encode_tag(f.number, WireType.LENGTH_DELIMITED) + wire.encode_length_delimited(body)
        return b"".join(wire.encode_tag(f.number, f.type.wire_type) + _encode_payload(item, f) for item in v.data)

    payload = _encode_payload(v, f)
    if not force and not f.has_presence and _is_default(v):
        return b""
    return wire.encode_tag(f.number, f.type.wire_type) + payload


def _encode_payload(v: Value, f: FieldDescriptor) -> bytes:
    t = f.type
    _expect(v, t.kind, f)
    if t is FieldType.MESSAGE:
        return wire.encode_length_delimited(_encode_message(v, f.message_type))
    if t is FieldType.STRING:
        if not isinstance(v.data, str):
            raise EncodeError(f"field {f.name!r} expects text", field=f.name)
        return wire.encode_length_delimited(v.data.encode("utf-8"))
    if t is FieldType.BYTES:
        if not isinstance(v.data, (bytes, bytearray)):
            raise EncodeError(f"field {f.name!r} expects bytes", field=f.name)
        return wire.encode_length_delimited(bytes(v.data))
    if t is FieldType.BOOL:
        if not isinstance(v.data, bool):
            raise EncodeError(f"field {f.name!r} expects a bool", field=f.name)
        return wire.encode_varint(int(v.data))
    if t is FieldType.DOUBLE:
        return wire.encode_double(_float(v, f))
    if t is FieldType.FLOAT:
        try:
            return wire.encode_float(_float(v, f))
        except (OverflowError, struct.error):
            raise EncodeError(f"field {f.name!r}: {v.data} does not fit a 32-bit float", field=f.name) from None

    n = _integer(v, f)
    if t is FieldType.FIXED32 or t is FieldType.SFIXED32:
        return wire.encode_fixed32(n)
    if t is FieldType.FIXED64 or t is FieldType.SFIXED64:
        return wire.encode_fixed64(n)
    if t is FieldType.SINT32:
        return wire.encode_varint(wire.zigzag_encode(n, 32))
    if t is FieldType.SINT64:
        return wire.encode_varint(wire.zigzag_encode(n, 64))
    return wire.encode_varint(n)


def _expect(v: Value, kind: Kind, f: FieldDescriptor) -> None:
    if not isinstance(v, Value) or v.kind is not kind:
        got = v.kind.value if isinstance(v, Value) else type(v).__name__
        raise EncodeError(f"field {f.name!r} ({f.type.name.lower()}) cannot hold a {got} value", field=f.name)


def _float(v: Value, f: FieldDescriptor) -> float:
    if isinstance(v.data, bool) or not isinstance(v.data, (int, float)):
        raise EncodeError(f"field {f.name!r} expects a number", field=f.name)
    try:
        return float(v.data)
    except OverflowError:
        raise EncodeError(f"field {f.name!r}: {v.data} is out of range for a float", field=f.name) from None


def _integer(v: Value, f: FieldDescriptor) -> int:
    if isinstance(v.data, bool) or not isinstance(v.data, int):
        raise EncodeError(f"field {f.name!r} expects an integer", field=f.name)
    low, high = INT_RANGES[f.type]
    if not low <= v.data <= high:
        raise EncodeError(f"field {f.name!r}: {v.data} out of range for {f.type.name.lower()}", field=f.name)
    return v.data


# --- native values ---

def from_native(obj: Any, descriptor: MessageDescriptor) -> Value:
    """Build a MESSAGE value from a fixed-shape object.

    ``obj`` is a mapping keyed by field name or a pydantic model; ``None`` entries are absent.
    """
    if hasattr(obj, "model_dump"):
        obj = {name: getattr(obj, name) for name in type(obj).model_fields}
    if not isinstance(obj, Mapping):
        raise EncodeError(f"{descriptor.full_name}: cannot build a message from {type(obj).__name__}")
    fields: dict[int, Value] = {}
    for name, item in obj.items():
        f = descriptor.field_by_name.get(name)
        if f is None:
            raise EncodeError(f"{descriptor.full_name} has no field {name!r}", field=name)
        if item is None:
            continue
        if f.is_map:
            if not isinstance(item, Mapping):
                raise EncodeError(f"field {name!r} expects a mapping", field=name)
            if item:
                fields[f.number] = Value(Kind.MAP, {
                    _native_single(k, f.map_key): _native_single(x, f.map_value) for k, x in item.items()
                })
        elif f.is_repeated:
            if isinstance(item, (str, bytes)) or not hasattr(item, "__iter__"):
                raise EncodeError(f"field {name!r} expects a sequence", field=name)
            items = tuple(_native_single(x, f) for x in item)
            if items:
                fields[f.number] = Value(Kind.LIST, items)
        else:
            value = _native_single(item, f)
            if f.has_presence or not _is_default(value):
                fields[f.number] = value
    return Value(Kind.MESSAGE, fields)


def _native_single(item: Any, f: FieldDescriptor) -> Value:
    if isinstance(item, Value):
        return item
    t = f.type
    if t is FieldType.MESSAGE:
        return from_native(item, f.message_type)
    if t is FieldType.ENUM:
        if isinstance(item, str):
            if item not in f.enum_type.numbers:
                raise EncodeError(f"field {f.name!r}: unknown enum symbol {item!r}", field=f.name)
            return Value(Kind.ENUM, f.enum_type.numbers[item])
        return Value(Kind.ENUM, int(item))
    kind = t.kind
    if kind is Kind.FLOAT:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise EncodeError(f"field {f.name!r} expects a number", field=f.name)
        try:
            return Value(Kind.FLOAT, round_float32(item) if t is FieldType.FLOAT else float(item))
        except OverflowError:
            raise EncodeError(f"field {f.name!r}: {item} is out of range for {t.name.lower()}", field=f.name) from None
    if kind in (Kind.INT, Kind.UINT):
        if isinstance(item, bool) or not isinstance(item, int):
            raise EncodeError(f"field {f.name!r} expects an integer", field=f.name)
        return Value(kind, int(item))
    if kind is Kind.BYTES and isinstance(item, (bytes, bytearray)):
        return Value(Kind.BYTES, bytes(item))
    if kind is Kind.STRING and isinstance(item, str):
        return Value(Kind.STRING, item)
    if kind is Kind.BOOL and isinstance(item, bool):
        return Value(Kind.BOOL, item)
    raise EncodeError(f"field {f.name!r} ({t.name.lower()}) cannot hold {type(item).__name__}", field=f.name)


def round_float32(x: float) -> float:
    """Round to the nearest 32-bit float; non-finite values pass through.

    Raises OverflowError for finite values beyond the 32-bit range.
    """
    x = float(x)
    if math.isnan(x) or math.isinf(x):
        return x
    try:
        return struct.unpack("<f", struct.pack("<f", x))[0]
    except struct.error as e:
        raise OverflowError(str(e)) from None
