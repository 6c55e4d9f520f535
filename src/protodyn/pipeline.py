"""
Emit and parse pipelines.

Parse runs ``RawInput -> EnvelopeUnwrapped -> SchemaResolved -> Decoded -> Projected``;
the error of a failing step carries that step in its ``stage`` attribute.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, Optional

from protodyn import codec, projection, samples
from protodyn.errors import ProtodynError, SchemaLoadError, TypeNotFoundError
from protodyn.resolvers import Resolver, StaticResolver
from protodyn.transport import envelope

_log = logging.getLogger("protodyn.pipeline")


class Stage(str, Enum):
    RAW_INPUT = "raw_input"
    ENVELOPE_UNWRAPPED = "envelope_unwrapped"
    SCHEMA_RESOLVED = "schema_resolved"
    DECODED = "decoded"
    PROJECTED = "projected"


@contextmanager
def _step(stage: Stage) -> Iterator[None]:
    try:
        yield
    except ProtodynError as e:
        if e.stage is None:
            e.stage = stage.value
        raise


def emit(
    shape_name: str,
    schema_uri: str,
    wrapped: bool = True,
    source: str = envelope.EVENT_SOURCE,
    subject: str = envelope.EVENT_SUBJECT,
    logger: Optional[logging.Logger] = None,
) -> bytes:
    """Encode the named sample message, optionally wrapped in an envelope."""
    log = logger or _log
    if shape_name not in samples.SHAPES:
        raise TypeNotFoundError(shape_name)
    descriptor = StaticResolver(logger=log).lookup(shape_name)
    payload = codec.encode(codec.from_native(samples.SHAPES[shape_name](), descriptor), descriptor)
    log.info("Encoded %s (size: %d bytes)", shape_name, len(payload))
    if not wrapped:
        return payload
    event = envelope.wrap(payload, shape_name, schema_uri, source=source, subject=subject)
    log.info("Wrapped %s in envelope (id: %s)", shape_name, event.id)
    return envelope.serialize(event)


def parse(
    source: bytes,
    resolver: Resolver,
    schema_uri: Optional[str] = None,
    wrapped: bool = True,
    logger: Optional[logging.Logger] = None,
) -> Any:
    """Decode ``source`` and return its JSON projection.

    For wrapped input the envelope's ``dataschema`` locates the schema and the whole
    envelope is returned with ``data`` replaced by the projection; raw input needs
    ``schema_uri``.
    """
    log = logger or _log
    payload = source
    if wrapped:
        with _step(Stage.ENVELOPE_UNWRAPPED):
            payload, schema_uri = envelope.unwrap(source)
        log.info("Unwrapped envelope (schema: %s, payload: %d bytes)", schema_uri, len(payload))
    else:
        with _step(Stage.RAW_INPUT):
            if not schema_uri:
                raise SchemaLoadError("A schema URI is required for raw input")

    with _step(Stage.SCHEMA_RESOLVED):
        descriptor = resolver.resolve(schema_uri)

    with _step(Stage.DECODED):
        value = codec.decode(payload, descriptor)
    log.info("Decoded %s (%d fields)", descriptor.full_name, len(value.fields))

    with _step(Stage.PROJECTED):
        projected = projection.to_json(value, descriptor)
        if wrapped:
            return envelope.project(source, projected)
    return projected
