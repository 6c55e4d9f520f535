"""
Compiled-in demonstration schema and sample messages.

The schema is built in code rather than loaded from a descriptor set file, so the
static resolver and the ``emit`` command work without a protoc build step.
"""

from enum import IntEnum
from typing import Callable, Optional

from google.protobuf import descriptor_pb2, timestamp_pb2
from pydantic import BaseModel

_FDP = descriptor_pb2.FieldDescriptorProto

PACKAGE = "protodyn.sample"
COMMON_FILE = "protodyn/sample/common.proto"
MESSAGES_FILE = "protodyn/sample/messages.proto"
TIMESTAMP_FILE = "google/protobuf/timestamp.proto"


# --- fixed shapes ---

class Values(IntEnum):
    VALUE_0 = 0
    VALUE_1 = 1
    VALUE_2 = 2


class Timestamp(BaseModel):
    seconds: int = 0
    nanos: int = 0


class SubMessage(BaseModel):
    param_01: Values = Values.VALUE_0
    param_02: str = ""


class SimpleMessage(BaseModel):
    param_01: str = ""
    param_02: bool = False
    param_03: bytes = b""
    param_04: int = 0        # int32
    param_05: int = 0        # int64
    param_06: int = 0        # uint32
    param_07: int = 0        # uint64
    param_08: int = 0        # sint32
    param_09: int = 0        # sint64
    param_10: int = 0        # fixed32
    param_11: int = 0        # fixed64
    param_12: int = 0        # sfixed32
    param_13: int = 0        # sfixed64
    param_14: float = 0.0    # float
    param_15: float = 0.0    # double


class ComplexMessage(BaseModel):
    param_01: list[str] = []
    param_02: dict[str, str] = {}
    # oneof param_03
    param_03_string: Optional[str] = None
    param_03_int: Optional[int] = None


class ImportMessage(BaseModel):
    param_01: Optional[Timestamp] = None
    param_02: Optional[SubMessage] = None


class ComposedMessage(BaseModel):
    param_01: Optional[SimpleMessage] = None
    param_02: Optional[ComplexMessage] = None


def new_simple_message() -> SimpleMessage:
    return SimpleMessage(
        param_01="first parameter",
        param_02=True,
        param_03=b"\x00\x01\x02",
        param_04=-32,
        param_05=-32321323412,
        param_06=10,
        param_07=2000000,
        param_08=12,
        param_09=-391,
        param_10=88888,
        param_11=32412141431,
        param_12=33224,
        param_13=-213123,
        param_14=-0.2,
        param_15=-0.000002,
    )


def new_complex_message() -> ComplexMessage:
    return ComplexMessage(
        param_01=["one", "two", "three"],
        param_02={"autumn": "red", "winter": "blue", "spring": "green", "summer": "yellow"},
        param_03_string="this is a oneof<string>",
    )


def new_import_message() -> ImportMessage:
    return ImportMessage(
        param_01=Timestamp(),
        param_02=SubMessage(param_01=Values.VALUE_1, param_02="this is nested!"),
    )


def new_composed_message() -> ComposedMessage:
    return ComposedMessage(param_01=new_simple_message(), param_02=new_complex_message())


SHAPES: dict[str, Callable[[], BaseModel]] = {
    "SimpleMessage": new_simple_message,
    "ComplexMessage": new_complex_message,
    "ImportMessage": new_import_message,
    "ComposedMessage": new_composed_message,
}


# --- schema ---

def _field(message: descriptor_pb2.DescriptorProto, name: str, number: int, type_: int,
           type_name: str = "", label: int = _FDP.LABEL_OPTIONAL,
           oneof_index: Optional[int] = None) -> None:
    f = message.field.add(name=name, number=number, type=type_, label=label)
    if type_name:
        f.type_name = type_name
    if oneof_index is not None:
        f.oneof_index = oneof_index


def _common_file() -> descriptor_pb2.FileDescriptorProto:
    fd = descriptor_pb2.FileDescriptorProto(name=COMMON_FILE, package=PACKAGE, syntax="proto3")

    values = fd.enum_type.add(name="Values")
    for member in Values:
        values.value.add(name=member.name, number=member.value)

    sub = fd.message_type.add(name="SubMessage")
    _field(sub, "param_01", 1, _FDP.TYPE_ENUM, f".{PACKAGE}.Values")
    _field(sub, "param_02", 2, _FDP.TYPE_STRING)
    return fd


_SIMPLE_TYPES = [
    _FDP.TYPE_STRING, _FDP.TYPE_BOOL, _FDP.TYPE_BYTES,
    _FDP.TYPE_INT32, _FDP.TYPE_INT64, _FDP.TYPE_UINT32, _FDP.TYPE_UINT64,
    _FDP.TYPE_SINT32, _FDP.TYPE_SINT64,
    _FDP.TYPE_FIXED32, _FDP.TYPE_FIXED64, _FDP.TYPE_SFIXED32, _FDP.TYPE_SFIXED64,
    _FDP.TYPE_FLOAT, _FDP.TYPE_DOUBLE,
]


def _messages_file() -> descriptor_pb2.FileDescriptorProto:
    fd = descriptor_pb2.FileDescriptorProto(name=MESSAGES_FILE, package=PACKAGE, syntax="proto3")
    fd.dependency.extend([TIMESTAMP_FILE, COMMON_FILE])

    simple = fd.message_type.add(name="SimpleMessage")
    for number, type_ in enumerate(_SIMPLE_TYPES, start=1):
        _field(simple, f"param_{number:02d}", number, type_)

    complex_ = fd.message_type.add(name="ComplexMessage")
    entry = complex_.nested_type.add(name="Param02Entry")
    entry.options.map_entry = True
    _field(entry, "key", 1, _FDP.TYPE_STRING)
    _field(entry, "value", 2, _FDP.TYPE_STRING)
    complex_.oneof_decl.add(name="param_03")
    _field(complex_, "param_01", 1, _FDP.TYPE_STRING, label=_FDP.LABEL_REPEATED)
    _field(complex_, "param_02", 2, _FDP.TYPE_MESSAGE, f".{PACKAGE}.ComplexMessage.Param02Entry",
           label=_FDP.LABEL_REPEATED)
    _field(complex_, "param_03_string", 3, _FDP.TYPE_STRING, oneof_index=0)
    _field(complex_, "param_03_int", 4, _FDP.TYPE_INT32, oneof_index=0)

    imported = fd.message_type.add(name="ImportMessage")
    _field(imported, "param_01", 1, _FDP.TYPE_MESSAGE, ".google.protobuf.Timestamp")
    _field(imported, "param_02", 2, _FDP.TYPE_MESSAGE, f".{PACKAGE}.SubMessage")

    composed = fd.message_type.add(name="ComposedMessage")
    _field(composed, "param_01", 1, _FDP.TYPE_MESSAGE, f".{PACKAGE}.SimpleMessage")
    _field(composed, "param_02", 2, _FDP.TYPE_MESSAGE, f".{PACKAGE}.ComplexMessage")
    return fd


def descriptor_set() -> descriptor_pb2.FileDescriptorSet:
    """The demonstration schema, dependencies first."""
    timestamp = descriptor_pb2.FileDescriptorProto.FromString(timestamp_pb2.DESCRIPTOR.serialized_pb)
    return descriptor_pb2.FileDescriptorSet(file=[timestamp, _common_file(), _messages_file()])


def descriptor_set_bytes() -> bytes:
    return descriptor_set().SerializeToString()
