"""
protodyn error types.

Every component raises one of these; I/O failures are left as ``OSError``.
"""

from typing import Any, Optional


class ProtodynError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details
        # Filled in by the parse pipeline with the step that failed.
        self.stage: Optional[str] = None


class SchemaLoadError(ProtodynError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("schema_load_error", message, details)


class TypeNotFoundError(ProtodynError):
    def __init__(self, name: str):
        super().__init__("type_not_found", f"Type not found: {name}", {"name": name})
        self.name = name


class MalformedWireDataError(ProtodynError):
    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__("malformed_wire_data", message, {"offset": offset} if offset is not None else None)
        self.offset = offset


class EncodeError(ProtodynError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__("encode_error", message, {"field": field} if field else None)
        self.field = field


class ProjectionError(ProtodynError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__("projection_error", message, {"field": field} if field else None)
        self.field = field


class EnvelopeFormatError(ProtodynError):
    def __init__(self, message: str):
        super().__init__("envelope_format_error", message)
