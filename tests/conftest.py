from typing import Optional

import pytest
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from protodyn import Registry, samples

_FDP = descriptor_pb2.FieldDescriptorProto


def add_field(message, name: str, number: int, type_: int, type_name: str = "",
              label: int = _FDP.LABEL_OPTIONAL, oneof_index: Optional[int] = None, packed: Optional[bool] = None):
    f = message.field.add(name=name, number=number, type=type_, label=label)
    if type_name:
        f.type_name = type_name
    if oneof_index is not None:
        f.oneof_index = oneof_index
    if packed is not None:
        f.options.packed = packed
    return f


def params_file() -> descriptor_pb2.FileDescriptorProto:
    """test.Params: one field of every shape the codec distinguishes."""
    fd = descriptor_pb2.FileDescriptorProto(name="test/params.proto", package="test", syntax="proto3")
    color = fd.enum_type.add(name="Color")
    color.value.add(name="COLOR_UNSPECIFIED", number=0)
    color.value.add(name="RED", number=1)
    color.value.add(name="GREEN", number=2)

    params = fd.message_type.add(name="Params")
    entry = params.nested_type.add(name="TagsEntry")
    entry.options.map_entry = True
    add_field(entry, "key", 1, _FDP.TYPE_INT32)
    add_field(entry, "value", 2, _FDP.TYPE_STRING)
    params.oneof_decl.add(name="choice")

    add_field(params, "name", 1, _FDP.TYPE_STRING)
    add_field(params, "flag", 2, _FDP.TYPE_BOOL)
    add_field(params, "raw", 3, _FDP.TYPE_BYTES)
    add_field(params, "numbers", 4, _FDP.TYPE_INT32, label=_FDP.LABEL_REPEATED)
    add_field(params, "tags", 5, _FDP.TYPE_MESSAGE, ".test.Params.TagsEntry", label=_FDP.LABEL_REPEATED)
    add_field(params, "color", 6, _FDP.TYPE_ENUM, ".test.Color")
    add_field(params, "text", 7, _FDP.TYPE_STRING, oneof_index=0)
    add_field(params, "count", 8, _FDP.TYPE_INT32, oneof_index=0)
    add_field(params, "child", 9, _FDP.TYPE_MESSAGE, ".test.Params")
    add_field(params, "ratio", 10, _FDP.TYPE_FLOAT)
    add_field(params, "scores", 11, _FDP.TYPE_DOUBLE, label=_FDP.LABEL_REPEATED, packed=False)
    add_field(params, "big", 12, _FDP.TYPE_UINT64)
    return fd


@pytest.fixture
def registry() -> Registry:
    return Registry.load(samples.descriptor_set_bytes())


@pytest.fixture
def params():
    return Registry.from_files([params_file()]).message("test.Params")


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "root.pb"
    path.write_bytes(samples.descriptor_set_bytes())
    return path


@pytest.fixture
def oracle():
    """Message classes built by the protobuf runtime itself from the sample schema."""
    pool = descriptor_pool.DescriptorPool()
    for fd in samples.descriptor_set().file:
        pool.AddSerializedFile(fd.SerializeToString())
    pool.AddSerializedFile(params_file().SerializeToString())

    def message_class(full_name: str):
        return message_factory.GetMessageClass(pool.FindMessageTypeByName(full_name))

    return message_class
