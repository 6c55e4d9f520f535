"""
protodyn — dynamic protobuf serde for Python.

Decode, encode and JSON-project protobuf messages from descriptor sets loaded
at runtime, and carry them in CloudEvent envelopes.
"""

from protodyn.codec import decode, encode, from_native
from protodyn.descriptors import Cardinality, EnumDescriptor, FieldDescriptor, FieldType, MessageDescriptor
from protodyn.errors import (
    EncodeError,
    EnvelopeFormatError,
    MalformedWireDataError,
    ProjectionError,
    ProtodynError,
    SchemaLoadError,
    TypeNotFoundError,
)
from protodyn.projection import from_json, to_json
from protodyn.registry import Registry, full_name
from protodyn.resolvers import DynamicResolver, Resolver, StaticResolver, resolver_for
from protodyn.values import Kind, Value

__version__ = "0.1.0"
__all__ = [
    "decode",
    "encode",
    "from_native",
    "to_json",
    "from_json",
    "Registry",
    "full_name",
    "Resolver",
    "DynamicResolver",
    "StaticResolver",
    "resolver_for",
    "Kind",
    "Value",
    "Cardinality",
    "EnumDescriptor",
    "FieldDescriptor",
    "FieldType",
    "MessageDescriptor",
    "ProtodynError",
    "SchemaLoadError",
    "TypeNotFoundError",
    "MalformedWireDataError",
    "EncodeError",
    "ProjectionError",
    "EnvelopeFormatError",
]
