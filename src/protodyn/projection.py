"""
Canonical JSON projection of generic values.
"""

import base64
import binascii
import math
from typing import Any

from protodyn.codec import round_float32
from protodyn.descriptors import INT_RANGES, FieldDescriptor, FieldType, MessageDescriptor
from protodyn.errors import ProjectionError
from protodyn.values import Kind, Value

_SPECIAL_FLOATS = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


def to_json(value: Value, descriptor: MessageDescriptor) -> dict[str, Any]:
    """Render a MESSAGE value as a JSON-compatible dict keyed by declared field names."""
    if value.kind is not Kind.MESSAGE:
        raise ProjectionError(f"{descriptor.full_name}: expected a message value, got {value.kind.value}")
    out: dict[str, Any] = {}
    for f in descriptor.fields:
        v = value.data.get(f.number)
        if v is None or v.kind is Kind.ABSENT:
            continue
        if f.is_map:
            out[f.name] = {_key_to_json(k): _single_to_json(x, f.map_value) for k, x in v.data.items()}
        elif f.is_repeated:
            out[f.name] = [_single_to_json(x, f) for x in v.data]
        else:
            out[f.name] = _single_to_json(v, f)
    return out


def _single_to_json(v: Value, f: FieldDescriptor) -> Any:
    kind = v.kind
    if kind is Kind.MESSAGE:
        return to_json(v, f.message_type)
    if kind is Kind.BYTES:
        return base64.b64encode(v.data).decode("ascii")
    if kind is Kind.ENUM:
        symbol = f.enum_type.symbol(v.data) if f.enum_type is not None else None
        return symbol if symbol is not None else v.data
    if kind is Kind.FLOAT:
        if math.isnan(v.data):
            return "NaN"
        if math.isinf(v.data):
            return "Infinity" if v.data > 0 else "-Infinity"
        return v.data
    if kind in (Kind.BOOL, Kind.INT, Kind.UINT, Kind.STRING):
        return v.data
    raise ProjectionError(f"field {f.name!r}: cannot project a {kind.value} value", field=f.name)


def _key_to_json(k: Value) -> str:
    if k.kind is Kind.BOOL:
        return "true" if k.data else "false"
    return str(k.data)


def from_json(obj: Any, descriptor: MessageDescriptor) -> Value:
    """Inverse of :func:`to_json`. Raises ProjectionError on anything that does not fit."""
    if not isinstance(obj, dict):
        raise ProjectionError(f"{descriptor.full_name}: expected a JSON object, got {type(obj).__name__}")
    fields: dict[int, Value] = {}
    for key, item in obj.items():
        f = descriptor.field_by_name.get(key)
        if f is None:
            raise ProjectionError(f"{descriptor.full_name} has no field {key!r}", field=key)
        if f.number in fields:
            raise ProjectionError(f"field {f.name!r} given more than once", field=f.name)
        if item is None:
            continue
        if f.is_map:
            if not isinstance(item, dict):
                raise ProjectionError(f"field {f.name!r} expects a JSON object", field=f.name)
            fields[f.number] = Value(Kind.MAP, {
                _key_from_json(k, f.map_key): _single_from_json(x, f.map_value) for k, x in item.items()
            })
        elif f.is_repeated:
            if not isinstance(item, list):
                raise ProjectionError(f"field {f.name!r} expects a JSON array", field=f.name)
            fields[f.number] = Value(Kind.LIST, tuple(_single_from_json(x, f) for x in item))
        else:
            fields[f.number] = _single_from_json(item, f)
    return Value(Kind.MESSAGE, fields)


def _single_from_json(item: Any, f: FieldDescriptor) -> Value:
    t = f.type
    if t is FieldType.MESSAGE:
        return from_json(item, f.message_type)
    if t is FieldType.ENUM:
        if isinstance(item, str):
            if item not in f.enum_type.numbers:
                raise ProjectionError(f"field {f.name!r}: unknown enum symbol {item!r}", field=f.name)
            return Value(Kind.ENUM, f.enum_type.numbers[item])
        return Value(Kind.ENUM, _integer(item, f))
    if t is FieldType.BOOL:
        if not isinstance(item, bool):
            raise ProjectionError(f"field {f.name!r} expects a boolean", field=f.name)
        return Value(Kind.BOOL, item)
    if t is FieldType.STRING:
        if not isinstance(item, str):
            raise ProjectionError(f"field {f.name!r} expects a string", field=f.name)
        return Value(Kind.STRING, item)
    if t is FieldType.BYTES:
        if not isinstance(item, str):
            raise ProjectionError(f"field {f.name!r} expects a base64 string", field=f.name)
        try:
            return Value(Kind.BYTES, base64.b64decode(item, validate=True))
        except binascii.Error as e:
            raise ProjectionError(f"field {f.name!r}: invalid base64 ({e})", field=f.name) from None
    if t is FieldType.DOUBLE or t is FieldType.FLOAT:
        return Value(Kind.FLOAT, _number(item, f))
    return Value(t.kind, _integer(item, f))


def _integer(item: Any, f: FieldDescriptor) -> int:
    if isinstance(item, bool):
        raise ProjectionError(f"field {f.name!r} expects an integer", field=f.name)
    if isinstance(item, str):
        try:
            item = int(item)
        except ValueError:
            raise ProjectionError(f"field {f.name!r}: {item!r} is not an integer", field=f.name) from None
    elif isinstance(item, float) and item.is_integer():
        item = int(item)
    if not isinstance(item, int):
        raise ProjectionError(f"field {f.name!r} expects an integer", field=f.name)
    low, high = INT_RANGES[f.type]
    if not low <= item <= high:
        raise ProjectionError(f"field {f.name!r}: {item} out of range for {f.type.name.lower()}", field=f.name)
    return item


def _number(item: Any, f: FieldDescriptor) -> float:
    if isinstance(item, str) and item in _SPECIAL_FLOATS:
        return _SPECIAL_FLOATS[item]
    if isinstance(item, bool) or not isinstance(item, (int, float)):
        raise ProjectionError(f"field {f.name!r} expects a number", field=f.name)
    try:
        if f.type is FieldType.FLOAT:
            return round_float32(item)
        return float(item)
    except OverflowError:
        raise ProjectionError(f"field {f.name!r}: {item} is out of range for {f.type.name.lower()}", field=f.name) from None


def _key_from_json(key: str, f: FieldDescriptor) -> Value:
    t = f.type
    if t is FieldType.STRING:
        return Value(Kind.STRING, key)
    if t is FieldType.BOOL:
        if key not in ("true", "false"):
            raise ProjectionError(f"map key {key!r} is not a boolean", field=f.name)
        return Value(Kind.BOOL, key == "true")
    try:
        return Value(t.kind, _integer(key, f))
    except ProjectionError:
        raise ProjectionError(f"map key {key!r} is not a valid {t.name.lower()}", field=f.name) from None
