"""
Application configuration loader (validation engine, pagination, API keys).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)


class ValidationConfig(BaseModel):
    max_schema_depth: int = Field(default=16, ge=1, le=64)
    # When true, replacing a schema re-validates the stored dynamic fields first
    revalidate_on_schema_change: bool = False


class PaginationConfig(BaseModel):
    default_limit: int = Field(default=10, ge=1, le=1000)
    max_limit: int = Field(default=100, ge=1, le=1000)

    @model_validator(mode="after")
    def _limits_consistent(self) -> "PaginationConfig":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit cannot exceed max_limit")
        return self


class SecurityConfig(BaseModel):
    # env var holding the comma-separated keys accepted in X-API-KEY
    api_keys_env: str = Field(default="API_KEYS", min_length=1)
    public_paths: List[str] = Field(
        default_factory=lambda: ["/", "/health", "/docs", "/docs/oauth2-redirect", "/openapi.json", "/redoc"]
    )

    def api_keys(self) -> List[str]:
        raw = os.getenv(self.api_keys_env, "")
        return [k.strip() for k in raw.split(",") if k.strip()]


class AppConfig(BaseModel):
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)


def _default_config_path() -> Path:
    env_path = os.getenv("APP_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    return Path(__file__).parent.parent.parent / "config" / "app_config.yml"


def load_app_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load and validate application configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to $APP_CONFIG_PATH, then
            config/app_config.yml at the project root.

    Returns:
        Validated AppConfig. Built-in defaults when the default file is absent.

    Raises:
        FileNotFoundError: If an explicitly given config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = _default_config_path()

    if not config_path.exists():
        if explicit:
            raise FileNotFoundError(f"App config file not found: {config_path}")
        logger.warning("App config file not found at %s, using defaults", config_path)
        return AppConfig()

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    try:
        cfg = AppConfig(**data)
        logger.info("Successfully loaded app config from %s", config_path)
        return cfg
    except ValidationError as e:
        logger.error("App config validation failed: %s", e)
        raise
