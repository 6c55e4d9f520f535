"""
Descriptor resolution strategies.

A schema URI has the shape ``<scheme>://<path-to-descriptor-set>#<SimpleTypeName>``.
``DynamicResolver`` loads the descriptor set the URI points at; ``StaticResolver``
ignores the path and looks the name up in the compiled-in sample schema.
"""

import logging
from pathlib import Path
from typing import NamedTuple, Optional, Protocol
from urllib.parse import unquote, urlparse

from protodyn import samples
from protodyn.descriptors import MessageDescriptor
from protodyn.errors import SchemaLoadError
from protodyn.registry import DEFAULT_TYPE_NAME_FORMAT, Registry, full_name

_log = logging.getLogger("protodyn.resolvers")


class SchemaRef(NamedTuple):
    path: str
    type_name: str


def parse_schema_uri(uri: str) -> SchemaRef:
    parsed = urlparse(uri)
    if parsed.scheme not in ("", "file"):
        raise SchemaLoadError(f"Unsupported schema URI scheme: {parsed.scheme!r}", {"uri": uri})
    if not parsed.fragment:
        raise SchemaLoadError(f"Schema URI has no type fragment: {uri!r}", {"uri": uri})
    # file://relative/dir/root.pb puts the first segment in the netloc.
    netloc = parsed.netloc if parsed.netloc not in ("", "localhost") else ""
    return SchemaRef(unquote(netloc + parsed.path), parsed.fragment)


class Resolver(Protocol):
    def resolve(self, schema_uri: str) -> MessageDescriptor:
        ...


class DynamicResolver:
    """Loads the descriptor set named by the URI path on every call."""

    def __init__(self, type_name_format: str = DEFAULT_TYPE_NAME_FORMAT, logger: Optional[logging.Logger] = None):
        self._format = type_name_format
        self._log = logger or _log

    def resolve(self, schema_uri: str) -> MessageDescriptor:
        ref = parse_schema_uri(schema_uri)
        self._log.info("Resolve schema URL components (path: %s, fragment: %s)", ref.path, ref.type_name)
        data = Path(ref.path).read_bytes()
        self._log.info("Read file descriptor set (size: %d bytes)", len(data))
        registry = Registry.load(data)
        name = full_name(ref.type_name, self._format)
        descriptor = registry.message(name)
        self._log.info("Retrieve descriptor for message (type: %s)", name)
        return descriptor


class StaticResolver:
    """Resolves against the compiled-in sample shapes; no file is read."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._format = f"{samples.PACKAGE}.{{}}"
        self._log = logger or _log
        self._registry = Registry.from_files(samples.descriptor_set().file)

    def shapes(self) -> list[str]:
        return list(samples.SHAPES)

    def lookup(self, simple_name: str) -> MessageDescriptor:
        name = full_name(simple_name, self._format)
        descriptor = self._registry.message(name)
        self._log.info("Retrieve compiled-in descriptor (type: %s)", name)
        return descriptor

    def resolve(self, schema_uri: str) -> MessageDescriptor:
        return self.lookup(parse_schema_uri(schema_uri).type_name)


def resolver_for(dynamic: bool, type_name_format: str = DEFAULT_TYPE_NAME_FORMAT,
                 logger: Optional[logging.Logger] = None) -> Resolver:
    if dynamic:
        return DynamicResolver(type_name_format, logger)
    return StaticResolver(logger)
