"""
ascii-pet-server Configuration
==============================

This module handles configuration loading for the pet server.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PET_CONFIG             -> path of the YAML file
    PET_ASSETS_ROOT        -> assets.root
    PET_DAY_OFFSET         -> assets.day_offset
    PET_MAX_VISITORS       -> visitors.max_visitors
    PET_VISITOR_TTL        -> visitors.ttl_seconds
    PET_SWEEP_INTERVAL     -> visitors.sweep_interval_seconds
    PET_VISITOR_BACKEND    -> visitors.backend
    PET_CLIENT_IP_HEADER   -> http.client_ip_header
    PET_PORT               -> server.port
    PET_LOG_LEVEL          -> logging.level
    PORT                   -> server.port (Cloud Run)

Example:
    from ascii_pet.config import settings

    print(settings.assets.root)
    print(settings.visitors.max_visitors)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="ascii-pet-server", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class AssetsConfig(BaseModel):
    """Animation asset configuration."""

    root: str = Field(
        default="./ascii-compressed",
        description="Directory holding one subdirectory per animation id",
    )
    day_offset: int = Field(
        default=0,
        description="Integer shift applied to the current day for rotation",
    )
    rotation_check_interval_seconds: float = Field(
        default=60.0,
        ge=0,
        description="How often to check for a day boundary (0 = never rotate)",
    )


class VisitorsConfig(BaseModel):
    """Visitor state store configuration."""

    backend: str = Field(
        default="local",
        description="Visitor state backend: 'local' or 'kv'",
    )
    max_visitors: int = Field(
        default=10_000,
        ge=0,
        description="Maximum tracked visitors (0 = unlimited)",
    )
    ttl_seconds: float = Field(
        default=3600.0,
        ge=0,
        description="Idle time before a visitor is forgotten (0 = never)",
    )
    sweep_interval_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Interval between TTL sweeps",
    )
    sweep_batch_size: int = Field(
        default=512,
        ge=1,
        description="Entries examined per lock acquisition during a sweep",
    )
    max_key_bytes: int = Field(
        default=511,
        ge=16,
        description="Upper bound on the raw fingerprint length in bytes",
    )
    hash_keys: bool = Field(
        default=True,
        description="Store SHA-256 digests instead of raw fingerprints",
    )
    include_query: bool = Field(
        default=False,
        description="Mix the request query string into the fingerprint",
    )

    @field_validator("backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        if value not in ("local", "kv"):
            raise ValueError(f"Unknown visitor backend: {value}")
        return value


class HttpConfig(BaseModel):
    """Request handling configuration."""

    client_ip_header: str = Field(
        default="CF-Connecting-IP",
        description="Header carrying the real client address behind a proxy",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for ascii-pet-server.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    assets: AssetsConfig = Field(default_factory=AssetsConfig)
    visitors: VisitorsConfig = Field(default_factory=VisitorsConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to a YAML file. Defaults to $PET_CONFIG, then
            config.yaml / config.yml in the working directory.
    """
    if config_path is None:
        config_path = os.environ.get("PET_CONFIG")
    if config_path is None:
        config_path = next(
            (name for name in ("config.yaml", "config.yml") if Path(name).exists()),
            None,
        )

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Asset settings
    if env_root := os.environ.get("PET_ASSETS_ROOT"):
        config_data.setdefault("assets", {})["root"] = env_root
    if env_offset := os.environ.get("PET_DAY_OFFSET"):
        config_data.setdefault("assets", {})["day_offset"] = int(env_offset)

    # Visitor store settings
    if env_max := os.environ.get("PET_MAX_VISITORS"):
        config_data.setdefault("visitors", {})["max_visitors"] = int(env_max)
    if env_ttl := os.environ.get("PET_VISITOR_TTL"):
        config_data.setdefault("visitors", {})["ttl_seconds"] = float(env_ttl)
    if env_sweep := os.environ.get("PET_SWEEP_INTERVAL"):
        config_data.setdefault("visitors", {})["sweep_interval_seconds"] = float(env_sweep)
    if env_backend := os.environ.get("PET_VISITOR_BACKEND"):
        config_data.setdefault("visitors", {})["backend"] = env_backend

    # HTTP settings
    if env_header := os.environ.get("PET_CLIENT_IP_HEADER"):
        config_data.setdefault("http", {})["client_ip_header"] = env_header

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("PET_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("PET_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


_LOG_FORMATS = {
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}',
    "text": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


def setup_logging(settings: Settings) -> None:
    """Configure root logging from settings.logging (json or text lines)."""
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=_LOG_FORMATS.get(settings.logging.format, _LOG_FORMATS["text"]),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    # One access line per frame request is noise outside debugging
    if level > logging.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# Global Settings Instance
# =============================================================================

settings = load_config()
setup_logging(settings)
