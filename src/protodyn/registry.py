"""
Schema registry — loads a serialized FileDescriptorSet and resolves type names.
"""

from typing import Iterable, Optional, Union

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from protodyn.descriptors import (
    Cardinality,
    EnumDescriptor,
    FieldDescriptor,
    FieldType,
    MessageDescriptor,
    OneofDescriptor,
)
from protodyn.errors import SchemaLoadError, TypeNotFoundError

DEFAULT_TYPE_NAME_FORMAT = "protodyn.sample.{}"

Descriptor = Union[MessageDescriptor, EnumDescriptor]

_FDP = descriptor_pb2.FieldDescriptorProto


def full_name(simple_name: str, template: str = DEFAULT_TYPE_NAME_FORMAT) -> str:
    """Expand a simple type name against the fixed namespace template."""
    return template.format(simple_name)


class Registry:
    def __init__(self, types: dict[str, Descriptor], files: Iterable[str] = ()):
        self._types = types
        self.files = list(files)

    @classmethod
    def load(cls, data: bytes) -> "Registry":
        """Parse a serialized FileDescriptorSet. Raises SchemaLoadError."""
        try:
            fds = descriptor_pb2.FileDescriptorSet.FromString(data)
        except DecodeError as e:
            raise SchemaLoadError(f"Invalid descriptor set: {e}")
        return cls.from_files(fds.file)

    @classmethod
    def from_files(cls, files: Iterable[descriptor_pb2.FileDescriptorProto]) -> "Registry":
        builder = _Builder()
        files = list(files)
        names = {f.name for f in files}
        for f in files:
            for dep in f.dependency:
                if dep not in names:
                    raise SchemaLoadError(f"{f.name}: import {dep!r} not found in descriptor set",
                                          {"file": f.name, "import": dep})
        for f in files:
            builder.index_file(f)
        builder.link()
        return cls(builder.types, [f.name for f in files])

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)

    def names(self) -> list[str]:
        return list(self._types)

    def resolve(self, name: str) -> Descriptor:
        try:
            return self._types[name]
        except KeyError:
            raise TypeNotFoundError(name) from None

    def message(self, name: str) -> MessageDescriptor:
        descriptor = self.resolve(name)
        if not isinstance(descriptor, MessageDescriptor):
            raise TypeNotFoundError(name)
        return descriptor

    def resolve_simple(self, simple_name: str, template: str = DEFAULT_TYPE_NAME_FORMAT) -> MessageDescriptor:
        return self.message(full_name(simple_name, template))


class _Builder:
    def __init__(self) -> None:
        self.types: dict[str, Descriptor] = {}
        # (scope, field, proto) awaiting type linking
        self._pending: list[tuple[str, FieldDescriptor, descriptor_pb2.FieldDescriptorProto]] = []

    def _add(self, name: str, descriptor: Descriptor) -> None:
        if name in self.types:
            raise SchemaLoadError(f"Duplicate type name: {name}", {"name": name})
        self.types[name] = descriptor

    def index_file(self, f: descriptor_pb2.FileDescriptorProto) -> None:
        proto3 = f.syntax == "proto3"
        prefix = f.package
        for e in f.enum_type:
            self._index_enum(prefix, e)
        for m in f.message_type:
            self._index_message(prefix, m, proto3, f.name)

    def _index_enum(self, scope: str, proto: descriptor_pb2.EnumDescriptorProto) -> None:
        name = _join(scope, proto.name)
        descriptor = EnumDescriptor(name)
        for v in proto.value:
            descriptor.values.setdefault(v.number, v.name)
            descriptor.numbers[v.name] = v.number
        self._add(name, descriptor)

    def _index_message(self, scope: str, proto: descriptor_pb2.DescriptorProto, proto3: bool, filename: str) -> None:
        name = _join(scope, proto.name)
        for e in proto.enum_type:
            self._index_enum(name, e)
        for nested in proto.nested_type:
            self._index_message(name, nested, proto3, filename)

        fields = []
        for fp in proto.field:
            if fp.type == _FDP.TYPE_GROUP:
                raise SchemaLoadError(f"{name}.{fp.name}: group fields are not supported", {"file": filename})
            if fp.number <= 0:
                raise SchemaLoadError(f"{name}.{fp.name}: invalid field number {fp.number}", {"file": filename})
            f = FieldDescriptor(
                number=fp.number,
                name=fp.name,
                # Unset when the type name still has to be resolved.
                type=FieldType(fp.type) if fp.HasField("type") else FieldType.MESSAGE,
                cardinality=Cardinality.REPEATED if fp.label == _FDP.LABEL_REPEATED else Cardinality.SINGULAR,
                json_name=fp.json_name,
                oneof_index=fp.oneof_index if fp.HasField("oneof_index") else None,
                type_name=fp.type_name,
            )
            if f.is_repeated:
                f.packed = fp.options.packed if fp.options.HasField("packed") else proto3
            else:
                f.has_presence = not proto3 or f.oneof_index is not None or fp.proto3_optional
            fields.append(f)
            if fp.type_name:
                self._pending.append((name, f, fp))

        descriptor = MessageDescriptor(name, fields, map_entry=proto.options.map_entry)
        for i, oneof in enumerate(proto.oneof_decl):
            descriptor.oneofs.append(OneofDescriptor(oneof.name, [f for f in fields if f.oneof_index == i]))
        for f in fields:
            if f.oneof_index is not None and f.oneof_index >= len(descriptor.oneofs):
                raise SchemaLoadError(f"{name}.{f.name}: oneof index {f.oneof_index} out of range")
        self._add(name, descriptor)

    def link(self) -> None:
        for scope, f, fp in self._pending:
            target = self._lookup(scope, fp.type_name)
            if target is None:
                raise SchemaLoadError(f"{scope}.{f.name}: unresolved type {fp.type_name!r}",
                                      {"type_name": fp.type_name})
            if isinstance(target, EnumDescriptor):
                f.type = FieldType.ENUM
                f.enum_type = target
            else:
                if fp.HasField("type") and fp.type != _FDP.TYPE_MESSAGE:
                    raise SchemaLoadError(f"{scope}.{f.name}: {fp.type_name!r} is not an enum")
                f.type = FieldType.MESSAGE
                f.message_type = target
                if f.is_repeated and target.map_entry:
                    f.cardinality = Cardinality.MAP
            f.type_name = target.full_name
        for descriptor in self.types.values():
            if isinstance(descriptor, MessageDescriptor):
                for f in descriptor.fields:
                    f.packed = f.packed and f.is_repeated and f.type.packable

    def _lookup(self, scope: str, type_name: str) -> Optional[Descriptor]:
        if type_name.startswith("."):
            return self.types.get(type_name[1:])
        # Relative reference: innermost scope outwards.
        parts = scope.split(".") if scope else []
        while True:
            candidate = _join(".".join(parts), type_name)
            if candidate in self.types:
                return self.types[candidate]
            if not parts:
                return None
            parts.pop()


def _join(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name
