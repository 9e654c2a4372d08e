"""
Configuration loading and validation.

Loads relay configuration from a YAML file. The upstream script URL is a
secret and is read from the environment variable the config names.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from fabledrop_shared.logs import LEVEL_NAMES


class UpstreamConfig(BaseModel):
    url: Optional[str] = None
    url_env: str = "GOOGLE_SCRIPT_URL"
    verify_tls: bool = True
    request_timeout_seconds: int = 30

    @property
    def resolved_url(self) -> str | None:
        """An explicit `url` wins over the environment."""
        return self.url or os.environ.get(self.url_env) or None


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 5001


class CorsConfig(BaseModel):
    origin: str = "http://localhost:3000"
    methods: list[str] = Field(default_factory=lambda: ["GET", "POST"])
    headers: list[str] = Field(default_factory=lambda: ["Content-Type"])


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "json"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.lower()
        if value not in LEVEL_NAMES:
            raise ValueError(f"level must be one of {', '.join(LEVEL_NAMES)}")
        return value


class MetricsConfig(BaseModel):
    enabled: bool = True


class RelayConfig(BaseModel):
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


def load_config(path: str | Path) -> RelayConfig:
    """Load and validate relay configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return RelayConfig.model_validate(raw)
