"""
This module defines the configuration for the ColorTeller deployment and page.
The deployment side is read from YAML into dataclasses; the page side is read
from the container environment.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import pulumi
import yaml

DEFAULT_ENV_VARS = [{"name": "COLOR", "value": "blue"}]
DEFAULT_COLOR = "#3B82F6"
DEFAULT_PORT = 8080


@dataclass
class DynamicConfigSettings:
    server_key: str
    name: str = "colorteller-cloudrun"
    field_name: str = "envVars"
    environment: str = "production"
    timeout: float = 3.0
    default: List[Dict[str, str]] = field(default_factory=lambda: [dict(e) for e in DEFAULT_ENV_VARS])


@dataclass
class Config:
    service: str
    image: str
    dynamic_config: DynamicConfigSettings


@dataclass
class AppSettings:
    port: int = DEFAULT_PORT
    color: str = DEFAULT_COLOR
    metadata_host: str = "metadata.google.internal"
    metadata_timeout_ms: int = 500

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppSettings":
        env = os.environ if environ is None else environ
        return cls(
            port=int(env.get("PORT") or DEFAULT_PORT),
            # An empty COLOR falls back too.
            color=env.get("COLOR") or DEFAULT_COLOR,
            metadata_host=env.get("METADATA_HOST") or "metadata.google.internal",
            metadata_timeout_ms=int(env.get("METADATA_TIMEOUT_MS") or 500),
        )


def resolve_value(value: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    if isinstance(value, dict):
        return {k: resolve_value(v, environ) for k, v in value.items()}
    elif isinstance(value, list):
        return [resolve_value(item, environ) for item in value]
    elif isinstance(value, str):
        if value.startswith("env:"):
            env = os.environ if environ is None else environ
            return env.get(value[len("env:"):], "")
        elif value.startswith("config:"):
            return pulumi.Config().get(value[len("config:"):]) or ""
        return value
    return value


def parse_config(config_data: dict, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Validate raw YAML data and build a ``Config``."""
    if not isinstance(config_data, dict):
        raise ValueError("Configuration must be a mapping")

    required_keys = ["service", "image", "dynamic_config"]
    for key in required_keys:
        if key not in config_data:
            raise ValueError(f"Missing required configuration key: {key}")

    data = resolve_value(config_data, environ)
    dyn = data["dynamic_config"] or {}
    if "server_key" not in dyn:
        raise ValueError("Missing required configuration key: dynamic_config.server_key")

    settings = DynamicConfigSettings(server_key=dyn["server_key"])
    for key, attr in (("name", "name"), ("field", "field_name"), ("environment", "environment"), ("default", "default")):
        if dyn.get(key) is not None:
            setattr(settings, attr, dyn[key])
    if dyn.get("timeout") is not None:
        settings.timeout = float(dyn["timeout"])

    return Config(service=data["service"], image=data["image"], dynamic_config=settings)


def load_config(file_path: str) -> Config:
    """Load and validate YAML configuration from the given file path."""
    with open(file_path, "r") as file:
        config_data = yaml.safe_load(file)
    return parse_config(config_data)
