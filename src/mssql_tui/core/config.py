"""Configuration management for mssql-tui.

Handles TOML config files, environment variables, named profiles,
and configuration precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--host, --port, etc.)
2. --dsn flag (parsed into components)
3. Environment variables (DB_HOST, DB_PORT, DB_DATABASE, DB_USER, DB_PASSWORD)
4. Named profile (--profile or MSSQL_TUI_PROFILE env var)
5. Config file defaults
6. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from pydantic import BaseModel, computed_field, field_validator, model_validator

from mssql_tui.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "mssql-tui" / "config.toml"

PROFILE_ENV_VAR = "MSSQL_TUI_PROFILE"

_DB_ENV_VARS: dict[str, str] = {
    "DB_HOST": "host",
    "DB_PORT": "port",
    "DB_DATABASE": "database",
    "DB_USER": "user",
    "DB_PASSWORD": "password",  # pragma: allowlist secret
}

_PROFILE_DEFAULTS: dict[str, Any] = {
    "host": "localhost",
    "port": 1433,
    "database": "master",
    "user": "sa",
    "password": "",
    "login_timeout": 10,
    "app_name": "mssql-tui",
    "tds_version": None,
}

_APP_DEFAULTS: dict[str, Any] = {
    "query_timeout": 30,
    "default_format": "table",
    "history_max_entries": 1000,
    "tick_ms": 250,
}

_VALID_TDS_VERSIONS = {"7.0", "7.1", "7.2", "7.3", "7.4", "8.0"}


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Supports mssql:// and sqlserver:// schemes with query params."""
    parsed = urlparse(dsn)
    if parsed.scheme not in ("mssql", "sqlserver"):
        msg = f"Invalid DSN scheme: '{parsed.scheme}'. Expected 'mssql' or 'sqlserver'"
        raise ConfigError(msg)

    result: dict[str, Any] = {}
    if parsed.hostname:
        result["host"] = parsed.hostname
    if parsed.port:
        result["port"] = parsed.port
    if parsed.path and parsed.path.strip("/"):
        result["database"] = parsed.path.strip("/")
    if parsed.username:
        result["user"] = unquote(parsed.username)
    if parsed.password:
        result["password"] = unquote(parsed.password)
    query_params = parse_qs(parsed.query)
    if "login_timeout" in query_params:
        result["login_timeout"] = int(query_params["login_timeout"][0])
    if "tds_version" in query_params:
        result["tds_version"] = query_params["tds_version"][0]
    if "app_name" in query_params:
        result["app_name"] = query_params["app_name"][0]
    return result


class MssqlProfile(BaseModel):
    dsn: str | None = None
    host: str = "localhost"
    port: int = 1433
    database: str = "master"
    user: str = "sa"
    password: str = ""
    login_timeout: int = 10
    app_name: str = "mssql-tui"
    tds_version: str | None = None

    @model_validator(mode="before")
    @classmethod
    def parse_dsn_into_components(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dsn"):
            dsn_fields = parse_dsn(data["dsn"])
            for key, value in dsn_fields.items():
                if key not in data:
                    data[key] = value
        return data

    @field_validator("tds_version")
    @classmethod
    def validate_tds_version(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_TDS_VERSIONS:
            msg = (
                f"Invalid tds_version: '{v}'. "
                f"Must be one of: {', '.join(sorted(_VALID_TDS_VERSIONS))}"
            )
            raise ValueError(msg)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            msg = f"Invalid port: {v}. Must be 1-65535"
            raise ValueError(msg)
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def connection_url(self) -> str:
        userinfo = f"{self.user}:***@" if self.password else f"{self.user}@"
        return f"mssql://{userinfo}{self.host}:{self.port}/{self.database}"


class AppConfig(BaseModel):
    query_timeout: int = 30
    default_format: str = "table"
    default_profile: str | None = None
    history_max_entries: int = 1000
    tick_ms: int = 250
    profiles: dict[str, MssqlProfile] = {}


class ResolvedConfig(BaseModel):
    host: str = "localhost"
    port: int = 1433
    database: str = "master"
    user: str = "sa"
    password: str = ""
    login_timeout: int = 10
    app_name: str = "mssql-tui"
    tds_version: str | None = None
    query_timeout: int = 30
    default_format: str = "table"
    history_max_entries: int = 1000
    tick_ms: int = 250
    active_profile: str | None = None
    sources: dict[str, str] = {}


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    dsn: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > DSN > env > profile > config defaults > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_PROFILE_DEFAULTS)
    resolved.update(_APP_DEFAULTS)
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file global defaults
    for key in _APP_DEFAULTS:
        if key in config.model_fields_set:
            resolved[key] = getattr(config, key)
            sources[key] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get(PROFILE_ENV_VAR)
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key == "dsn":
                continue
            if key in resolved:
                resolved[key] = getattr(profile, key)
                sources[key] = f"profile: {effective_profile}"

    # Layer 4: Environment variables
    for env_var, field_name in _DB_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is not None:
            if field_name == "port":
                try:
                    resolved[field_name] = int(value)
                except ValueError:
                    msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                    raise ConfigError(msg) from None
            else:
                resolved[field_name] = value
            sources[field_name] = f"env: {env_var}"

    # Layer 5: DSN flag
    if dsn:
        dsn_fields = parse_dsn(dsn)
        for key, value in dsn_fields.items():
            if key in resolved:
                resolved[key] = value
                sources[key] = "dsn"

    # Layer 6: CLI flags (highest priority)
    cli_to_field = {
        "host": "host",
        "port": "port",
        "database": "database",
        "user": "user",
        "password": "password",  # pragma: allowlist secret
        "timeout": "query_timeout",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name}"

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    return ResolvedConfig(**resolved)
