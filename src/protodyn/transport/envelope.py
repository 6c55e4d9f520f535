"""
Envelope construction and parsing.

Emitted events carry the protobuf payload base64-encoded in ``data`` and point
at the descriptor set with ``dataschema = <schema base URI>#<type name>``.
"""

import base64
import binascii
import json
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from protodyn.errors import EnvelopeFormatError
from protodyn.models.envelope import JSON_CONTENT_TYPE, PROTOBUF_CONTENT_TYPE, CloudEvent

EVENT_SOURCE = "http://localhost/publisher"
EVENT_SUBJECT = "publisher"


def wrap(
    payload: bytes,
    type_name: str,
    schema_base_uri: str,
    source: str = EVENT_SOURCE,
    subject: str = EVENT_SUBJECT,
) -> CloudEvent:
    """Build an envelope around an encoded payload."""
    return CloudEvent(
        id=str(uuid.uuid4()),
        source=source,
        subject=subject,
        type=type_name,
        dataschema=f"{schema_base_uri}#{type_name}",
        time=datetime.now(timezone.utc).isoformat(),
        datacontenttype=PROTOBUF_CONTENT_TYPE,
        data=base64.b64encode(payload).decode("ascii"),
    )


def serialize(event: CloudEvent) -> bytes:
    return event.model_dump_json(exclude_none=True).encode("utf-8")


def parse_envelope(raw: bytes) -> CloudEvent:
    """Parse a serialized envelope. Raises EnvelopeFormatError if invalid."""
    try:
        doc = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise EnvelopeFormatError(f"Envelope is not valid JSON: {e}") from None
    if not isinstance(doc, dict):
        raise EnvelopeFormatError("Envelope must be a JSON object")
    try:
        return CloudEvent.model_validate(doc)
    except ValidationError as e:
        raise EnvelopeFormatError(f"Invalid envelope: {e.error_count()} error(s): {e.errors()[0]['loc']}") from None


def unwrap(raw: bytes) -> tuple[bytes, str]:
    """Recover ``(payload, dataschema)`` from a serialized envelope."""
    event = parse_envelope(raw)
    if not event.dataschema:
        raise EnvelopeFormatError("Envelope has no dataschema")
    encoded = event.data_base64 if event.data_base64 is not None else event.data
    if encoded is None:
        raise EnvelopeFormatError("Envelope has no payload")
    if not isinstance(encoded, str):
        raise EnvelopeFormatError("Envelope payload is not a base64 string")
    try:
        payload = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise EnvelopeFormatError(f"Envelope payload is not valid base64: {e}") from None
    return payload, event.dataschema


def project(raw: bytes, projected: Any) -> dict[str, Any]:
    """Return the envelope record with its payload replaced by ``projected``."""
    event = parse_envelope(raw)
    record = event.model_dump(exclude_none=True)
    record.pop("data_base64", None)
    record["datacontenttype"] = JSON_CONTENT_TYPE
    record["data"] = projected
    return record
