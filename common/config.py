"""Connection and discovery settings shared by the CLIs."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

# environment variable -> DiscoveryConfig field
ENV_OVERRIDES = {
    "VCLOUD_ENDPOINT": "endpoint",
    "VCLOUD_USER": "user",
    "VCLOUD_PASSWORD": "password",
    "VCLOUD_BLACKLIST_NODES": "blacklist_nodes",
}


class DiscoveryConfig(BaseModel):
    """Where the inventory lives and which vApps to ignore."""

    model_config = ConfigDict(populate_by_name=True)

    hypervisor_type: str = Field(default="mock_vcloud", alias="hypervisor-type")
    endpoint: str = Field(default="http://127.0.0.1:8000", description="Base URL including scheme")
    user: str = ""
    password: str = ""
    blacklist_nodes: str = Field(
        default="",
        alias="blacklist-nodes",
        description="Comma-separated vApp names never reported as nodes",
    )
    timeout: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds")

    @field_validator("blacklist_nodes", mode="before")
    @classmethod
    def _empty_when_unset(cls, value: Any) -> Any:
        # `blacklist-nodes:` with no value loads as None
        return "" if value is None else value


def load_config(source: Any = None, environ: Mapping[str, str] | None = None) -> DiscoveryConfig:
    """Build a DiscoveryConfig from a mapping, YAML/JSON text or a file path.

    Values from ``environ`` (``os.environ`` by default) win over the source.
    """
    if environ is None:
        environ = os.environ
    payload: dict[str, Any]
    if source is None:
        payload = {}
    elif isinstance(source, Mapping):
        payload = dict(source)
    elif isinstance(source, Path):
        payload = _load_text_payload(source.read_text())
    elif isinstance(source, (str, bytes)):
        payload = _load_text_payload(source)
    else:
        raise TypeError("Unsupported configuration source")
    if not isinstance(payload, dict):
        raise ValueError("Configuration must be a mapping")

    for var, field_name in ENV_OVERRIDES.items():
        if var in environ:
            payload.pop(field_name.replace("_", "-"), None)
            payload[field_name] = environ[var]
    try:
        return DiscoveryConfig.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid discovery configuration: {exc}") from exc


def _load_text_payload(raw: str | bytes) -> Any:
    """Interpret raw text as YAML first, falling back to JSON."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError("Configuration is neither YAML nor JSON") from exc


__all__ = ["DiscoveryConfig", "ENV_OVERRIDES", "load_config"]
