"""
Structural type descriptors, independent of any generated code.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional

from protodyn.values import Kind
from protodyn.wire import WireType


class FieldType(IntEnum):
    # Numbering follows FieldDescriptorProto.Type.
    DOUBLE = 1
    FLOAT = 2
    INT64 = 3
    UINT64 = 4
    INT32 = 5
    FIXED64 = 6
    FIXED32 = 7
    BOOL = 8
    STRING = 9
    MESSAGE = 11
    BYTES = 12
    UINT32 = 13
    ENUM = 14
    SFIXED32 = 15
    SFIXED64 = 16
    SINT32 = 17
    SINT64 = 18

    @property
    def wire_type(self) -> WireType:
        return _WIRE_TYPES[self]

    @property
    def kind(self) -> Kind:
        return _KINDS[self]

    @property
    def packable(self) -> bool:
        return self.wire_type is not WireType.LENGTH_DELIMITED


_WIRE_TYPES = {
    FieldType.DOUBLE: WireType.FIXED64,
    FieldType.FLOAT: WireType.FIXED32,
    FieldType.INT64: WireType.VARINT,
    FieldType.UINT64: WireType.VARINT,
    FieldType.INT32: WireType.VARINT,
    FieldType.FIXED64: WireType.FIXED64,
    FieldType.FIXED32: WireType.FIXED32,
    FieldType.BOOL: WireType.VARINT,
    FieldType.STRING: WireType.LENGTH_DELIMITED,
    FieldType.MESSAGE: WireType.LENGTH_DELIMITED,
    FieldType.BYTES: WireType.LENGTH_DELIMITED,
    FieldType.UINT32: WireType.VARINT,
    FieldType.ENUM: WireType.VARINT,
    FieldType.SFIXED32: WireType.FIXED32,
    FieldType.SFIXED64: WireType.FIXED64,
    FieldType.SINT32: WireType.VARINT,
    FieldType.SINT64: WireType.VARINT,
}

_KINDS = {
    FieldType.DOUBLE: Kind.FLOAT,
    FieldType.FLOAT: Kind.FLOAT,
    FieldType.INT64: Kind.INT,
    FieldType.UINT64: Kind.UINT,
    FieldType.INT32: Kind.INT,
    FieldType.FIXED64: Kind.UINT,
    FieldType.FIXED32: Kind.UINT,
    FieldType.BOOL: Kind.BOOL,
    FieldType.STRING: Kind.STRING,
    FieldType.MESSAGE: Kind.MESSAGE,
    FieldType.BYTES: Kind.BYTES,
    FieldType.UINT32: Kind.UINT,
    FieldType.ENUM: Kind.ENUM,
    FieldType.SFIXED32: Kind.INT,
    FieldType.SFIXED64: Kind.INT,
    FieldType.SINT32: Kind.INT,
    FieldType.SINT64: Kind.INT,
}

# Inclusive ranges for integer-valued field types.
INT_RANGES = {
    FieldType.INT32: (-(1 << 31), (1 << 31) - 1),
    FieldType.SINT32: (-(1 << 31), (1 << 31) - 1),
    FieldType.SFIXED32: (-(1 << 31), (1 << 31) - 1),
    FieldType.ENUM: (-(1 << 31), (1 << 31) - 1),
    FieldType.INT64: (-(1 << 63), (1 << 63) - 1),
    FieldType.SINT64: (-(1 << 63), (1 << 63) - 1),
    FieldType.SFIXED64: (-(1 << 63), (1 << 63) - 1),
    FieldType.UINT32: (0, (1 << 32) - 1),
    FieldType.FIXED32: (0, (1 << 32) - 1),
    FieldType.UINT64: (0, (1 << 64) - 1),
    FieldType.FIXED64: (0, (1 << 64) - 1),
}


class Cardinality(str, Enum):
    SINGULAR = "singular"
    REPEATED = "repeated"
    MAP = "map"


@dataclass
class EnumDescriptor:
    full_name: str
    values: dict[int, str] = field(default_factory=dict)
    numbers: dict[str, int] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.full_name.rsplit(".", 1)[-1]

    def symbol(self, number: int) -> Optional[str]:
        return self.values.get(number)


@dataclass(eq=False)
class FieldDescriptor:
    number: int
    name: str
    type: FieldType
    cardinality: Cardinality = Cardinality.SINGULAR
    json_name: str = ""
    oneof_index: Optional[int] = None
    packed: bool = False
    has_presence: bool = False
    type_name: str = ""
    # Linked after the whole descriptor set is indexed.
    message_type: Optional["MessageDescriptor"] = None
    enum_type: Optional[EnumDescriptor] = None

    @property
    def is_repeated(self) -> bool:
        return self.cardinality is Cardinality.REPEATED

    @property
    def is_map(self) -> bool:
        return self.cardinality is Cardinality.MAP

    @property
    def map_key(self) -> "FieldDescriptor":
        return self.message_type.field_by_number[1]

    @property
    def map_value(self) -> "FieldDescriptor":
        return self.message_type.field_by_number[2]

    def __repr__(self) -> str:
        return f"FieldDescriptor({self.number}, {self.name!r}, {self.type.name}, {self.cardinality.value})"


@dataclass
class OneofDescriptor:
    name: str
    fields: list[FieldDescriptor] = field(default_factory=list)


@dataclass(eq=False)
class MessageDescriptor:
    full_name: str
    fields: list[FieldDescriptor] = field(default_factory=list)
    oneofs: list[OneofDescriptor] = field(default_factory=list)
    map_entry: bool = False

    def __post_init__(self) -> None:
        self.field_by_number = {f.number: f for f in self.fields}
        self.field_by_name = {f.name: f for f in self.fields}
        for f in self.fields:
            if f.json_name:
                self.field_by_name.setdefault(f.json_name, f)

    @property
    def name(self) -> str:
        return self.full_name.rsplit(".", 1)[-1]

    def oneof_of(self, f: FieldDescriptor) -> Optional[OneofDescriptor]:
        if f.oneof_index is None:
            return None
        return self.oneofs[f.oneof_index]

    def __repr__(self) -> str:
        return f"MessageDescriptor({self.full_name!r}, {len(self.fields)} fields)"
