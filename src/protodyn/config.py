"""
Settings, read from ``$PROTODYN_CONFIG`` or ``~/.protodyn/config.json``.
"""

import json
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ValidationError

from protodyn.registry import DEFAULT_TYPE_NAME_FORMAT
from protodyn.transport.envelope import EVENT_SOURCE, EVENT_SUBJECT

CONFIG_FILE = Path.home() / ".protodyn" / "config.json"


class Settings(BaseModel):
    type_name_format: str = DEFAULT_TYPE_NAME_FORMAT
    event_source: str = EVENT_SOURCE
    event_subject: str = EVENT_SUBJECT
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


def config_path() -> Path:
    env = os.environ.get("PROTODYN_CONFIG")
    return Path(env) if env else CONFIG_FILE


def load_settings(path: Optional[Path] = None) -> Settings:
    """Missing or unreadable config files fall back to defaults."""
    try:
        raw = json.loads((path or config_path()).read_text())
        return Settings.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError):
        return Settings()
