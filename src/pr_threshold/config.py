"""Configuration loading for pr-threshold."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from pr_threshold.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path(".threshold.yaml")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class GitHubConfig:
    """Source-control host connection settings."""

    host: str = ""
    token: str = ""
    app_id: str = ""
    installation_id: str = ""
    private_key: str = ""
    timeout: int = 30

    def __post_init__(self):
        if self.timeout <= 0:
            raise ConfigError(f"github.timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class ThresholdConfig:
    """Complexity thresholds. Zero disables a threshold.

    Only ``max_files`` is evaluated; the other limits are accepted so existing
    configuration files keep loading, but they have no effect yet.
    """

    max_files: int = 0
    max_commits: int = 0
    max_comments: int = 0
    max_lines: int = 0
    strict: bool = False

    def __post_init__(self):
        for name in ("max_files", "max_commits", "max_comments", "max_lines"):
            if getattr(self, name) < 0:
                raise ConfigError(f"thresholds.{name} must not be negative")


@dataclass(frozen=True)
class ServerConfig:
    """Webhook listener settings."""

    host: str = "0.0.0.0"
    port: int = 8080
    path: str = "/"
    webhook_secret: str = ""

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise ConfigError(f"server.port out of range: {self.port}")
        if not self.path.startswith("/"):
            raise ConfigError(f"server.path must start with '/': {self.path!r}")


@dataclass(frozen=True)
class Config:
    """Main configuration object."""

    version: int = 1
    github: GitHubConfig = field(default_factory=GitHubConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"


# (section, field) -> environment variable
ENV_VARS = {
    ("github", "host"): "GITHUB_HOST",
    ("github", "token"): "GITHUB_TOKEN",
    ("github", "app_id"): "GITHUB_APP_ID",
    ("github", "installation_id"): "GITHUB_APP_INSTALLATION_ID",
    ("github", "private_key"): "GITHUB_APP_PRIVATE_KEY_BASE64",
    ("thresholds", "max_files"): "THRESHOLD_MAX_FILES",
    ("thresholds", "max_commits"): "THRESHOLD_MAX_COMMITS",
    ("thresholds", "max_comments"): "THRESHOLD_MAX_COMMENTS",
    ("thresholds", "max_lines"): "THRESHOLD_MAX_LINES",
    ("thresholds", "strict"): "THRESHOLD_STRICT",
    ("server", "webhook_secret"): "WEBHOOK_SECRET",
}


def _coerce(key: str, value: Any, typ: type) -> Any:
    """Convert a YAML, environment or CLI value to the declared field type."""
    if typ is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
            return value.strip().lower() in _TRUE
        raise ConfigError(f"{key} must be a boolean, got {value!r}")

    if typ is int:
        if isinstance(value, bool):
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise ConfigError(f"{key} must be an integer, got {value!r}") from None
        raise ConfigError(f"{key} must be an integer, got {value!r}")

    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigError(f"{key} must be a string, got {value!r}")
    return str(value)


def _build(cls, section: str, data: Any):
    """Build a section dataclass from a mapping, ignoring unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ConfigError(f"'{section}' must be a mapping")

    values = {}
    for f in fields(cls):
        if f.name in data and data[f.name] is not None:
            values[f.name] = _coerce(f"{section}.{f.name}", data[f.name], f.type)
    return cls(**values)


def _apply(config: Config, updates: dict[str, dict[str, Any]]) -> Config:
    """Return a copy of ``config`` with per-section field updates applied."""
    for section, values in updates.items():
        if not values:
            continue
        current = getattr(config, section)
        types = {f.name: f.type for f in fields(current)}
        coerced = {
            name: _coerce(f"{section}.{name}", value, types[name])
            for name, value in values.items()
        }
        config = replace(config, **{section: replace(current, **coerced)})
    return config


def load_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration, merging (in order of precedence):

    1. Built-in defaults
    2. The YAML file at ``path`` (``.threshold.yaml`` by default)
    3. Environment variables (see ``ENV_VARS``)
    4. ``overrides``, keyed by section then field; ``None`` values are skipped
    """
    path = path or DEFAULT_CONFIG_PATH
    environ = os.environ if environ is None else environ

    data: dict = {}
    if path.exists():
        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Could not parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")

    config = Config(
        github=_build(GitHubConfig, "github", data.get("github")),
        thresholds=_build(ThresholdConfig, "thresholds", data.get("thresholds")),
        server=_build(ServerConfig, "server", data.get("server")),
    )
    if "log_level" in data:
        config = replace(config, log_level=_coerce("log_level", data["log_level"], str))

    from_env: dict[str, dict[str, Any]] = {}
    for (section, name), var in ENV_VARS.items():
        if environ.get(var):
            from_env.setdefault(section, {})[name] = environ[var]
    config = _apply(config, from_env)
    if environ.get("LOG_LEVEL"):
        config = replace(config, log_level=environ["LOG_LEVEL"])

    overrides = dict(overrides or {})
    log_level = overrides.pop("log_level", None)
    config = _apply(config, {
        section: {k: v for k, v in values.items() if v is not None}
        for section, values in overrides.items()
    })
    if log_level:
        config = replace(config, log_level=log_level)

    level = config.log_level.upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level: {config.log_level!r}")
    return replace(config, log_level=level)
