# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP server configuration - single source of truth.
YAML holds the settings; a handful of env vars override them for
containers and local runs.
"""

import os
import yaml
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, List, Any

from mcp_hello.core.errors import ConfigurationError


TRANSPORTS = ("stdio", "http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")

DEFAULT_CONFIG_PATH = "configs/server.yaml"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable server configuration.
    All values from YAML, optionally overridden by environment.
    """

    # -- Server identity --
    server_name: str = "mcp-hello-world-server"
    server_version: str = "1.0.0"

    # -- Transport --
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 3000
    mcp_path: str = "/mcp"
    sse_path: str = "/sse"
    messages_path: str = "/messages"
    cors_enabled: bool = False
    validate_origin: bool = True
    allowed_origins: List[str] = field(default_factory=list)

    # -- Sessions --
    max_sessions: int = 100
    keepalive_interval: float = 25.0
    session_idle_timeout: float = 3600.0
    session_sweep_interval: float = 60.0
    shutdown_timeout: float = 5.0

    # -- Limits --
    max_message_bytes: int = 4 * 1024 * 1024

    # -- Validation --
    validate_arguments: bool = True

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def is_http(self) -> bool:
        return self.transport == "http"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with the given non-None fields replaced, validated."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        config = replace(self, **changes)
        validate_config(config)
        return config


# =============================================================================
# VALIDATION
# =============================================================================

def validate_config(config: Config, config_file: Optional[str] = None) -> None:
    """Reject values the server cannot run with."""
    if config.transport not in TRANSPORTS:
        raise ConfigurationError(
            f"Unsupported transport type: {config.transport}",
            config_file=config_file,
            details={"supported": list(TRANSPORTS)},
        )
    if not 0 < config.port < 65536:
        raise ConfigurationError(f"Invalid port: {config.port}", config_file=config_file)
    if config.max_sessions < 1:
        raise ConfigurationError("max_sessions must be at least 1", config_file=config_file)
    if config.keepalive_interval <= 0:
        raise ConfigurationError("keepalive_interval must be positive", config_file=config_file)
    if config.session_idle_timeout < 0:
        raise ConfigurationError("session_idle_timeout cannot be negative", config_file=config_file)
    if config.max_message_bytes < 1024:
        raise ConfigurationError("max_message_bytes must be at least 1024", config_file=config_file)
    if config.log_level.upper() not in LOG_LEVELS:
        raise ConfigurationError(f"Invalid log level: {config.log_level}", config_file=config_file)
    if config.log_format not in LOG_FORMATS:
        raise ConfigurationError(f"Invalid log format: {config.log_format}", config_file=config_file)
    for path in (config.mcp_path, config.sse_path, config.messages_path):
        if not path.startswith("/"):
            raise ConfigurationError(f"Route path must start with '/': {path}", config_file=config_file)


# =============================================================================
# ENVIRONMENT HELPERS
# =============================================================================

def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer, got {value!r}")


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be a number, got {value!r}")


def _env_list(name: str) -> Optional[List[str]]:
    value = os.getenv(name)
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _first(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults (plus env overrides) if file doesn't exist.
    """
    y: dict = {}
    if Path(path).exists():
        try:
            with open(path) as f:
                y = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", config_file=path)
        if not isinstance(y, dict):
            raise ConfigurationError("Top-level YAML value must be a mapping", config_file=path)

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()
    config = Config(
        # Server identity
        server_name=_first(get(y, "server", "name"), defaults.server_name),
        server_version=str(_first(get(y, "server", "version"), defaults.server_version)),

        # Transport
        transport=_first(os.getenv("TRANSPORT"), get(y, "server", "transport"), defaults.transport),
        host=_first(os.getenv("HOST"), get(y, "http", "host"), defaults.host),
        port=_first(_env_int("PORT"), get(y, "http", "port"), defaults.port),
        mcp_path=_first(get(y, "http", "paths", "mcp"), defaults.mcp_path),
        sse_path=_first(get(y, "http", "paths", "sse"), defaults.sse_path),
        messages_path=_first(get(y, "http", "paths", "messages"), defaults.messages_path),
        cors_enabled=_first(get(y, "http", "cors"), defaults.cors_enabled),
        validate_origin=_first(get(y, "http", "validate_origin"), defaults.validate_origin),
        allowed_origins=_first(
            _env_list("MCP_ALLOWED_ORIGINS"), get(y, "http", "allowed_origins"), []
        ),

        # Sessions
        max_sessions=_first(_env_int("MCP_MAX_SESSIONS"), get(y, "sessions", "max_sessions"), defaults.max_sessions),
        keepalive_interval=float(_first(get(y, "sessions", "keepalive_interval"), defaults.keepalive_interval)),
        session_idle_timeout=float(_first(
            _env_float("MCP_SESSION_IDLE_TIMEOUT"),
            get(y, "sessions", "idle_timeout"),
            defaults.session_idle_timeout,
        )),
        session_sweep_interval=float(_first(get(y, "sessions", "sweep_interval"), defaults.session_sweep_interval)),
        shutdown_timeout=float(_first(get(y, "sessions", "shutdown_timeout"), defaults.shutdown_timeout)),

        # Limits
        max_message_bytes=_first(get(y, "limits", "max_message_bytes"), defaults.max_message_bytes),

        # Validation
        validate_arguments=_first(
            _env_bool("MCP_VALIDATE_ARGUMENTS"),
            get(y, "validation", "arguments"),
            defaults.validate_arguments,
        ),

        # Logging
        log_level=_first(os.getenv("LOG_LEVEL"), get(y, "logging", "level"), defaults.log_level).upper(),
        log_format=_first(os.getenv("LOG_FORMAT"), get(y, "logging", "format"), defaults.log_format),
    )
    validate_config(config, config_file=path)
    return config


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("MCP_SERVER_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
