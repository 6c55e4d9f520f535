"""
CloudEvent envelope — CloudEvents 1.0 JSON event format.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict

SPEC_VERSION = "1.0"
PROTOBUF_CONTENT_TYPE = "application/protobuf"
JSON_CONTENT_TYPE = "application/json"


class CloudEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    specversion: str = SPEC_VERSION
    id: str
    source: str
    type: str
    subject: Optional[str] = None
    dataschema: Optional[str] = None
    time: Optional[str] = None
    datacontenttype: Optional[str] = None
    data: Optional[Any] = None       # base64 string for binary payloads, JSON once projected
    data_base64: Optional[str] = None
