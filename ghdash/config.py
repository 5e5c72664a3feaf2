"""Configuration loading and constants for the dashboard."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from actions_sdk import api_base_url

from .aggregator import DEFAULT_FETCH_TIMEOUT
from .errors import ConfigError
from .models import RepositorySpec
from .scheduler import DEFAULT_REFRESH_INTERVAL


APP_NAME = "gh-dashboard"

DEFAULT_HOST = "github.com"

# Environment variables
ENV_CONFIG = "GH_DASHBOARD_CONFIG"
ENV_HOST = "GH_DASHBOARD_HOST"
ENV_REFRESH_INTERVAL = "GH_DASHBOARD_REFRESH_INTERVAL"
ENV_LOG_LEVEL = "GH_DASHBOARD_LOG_LEVEL"

KNOWN_KEYS = {"host", "auth_token", "refresh_interval", "fetch_timeout", "repos"}


@dataclass
class Settings:
    """Resolved configuration. Read-only once the dashboard starts."""

    host: str = DEFAULT_HOST
    auth_token: str | None = field(default=None, repr=False)
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    repos: list[RepositorySpec] = field(default_factory=list)

    @property
    def api_url(self) -> str:
        return api_base_url(self.host)


def get_user_config_dir(env: Mapping[str, str] | None = None) -> Path:
    """Get the per-user config directory ($XDG_CONFIG_HOME/gh-dashboard)."""
    env = os.environ if env is None else env
    base = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_NAME


def get_state_dir(env: Mapping[str, str] | None = None) -> Path:
    """Get the per-user state directory used for the log file."""
    env = os.environ if env is None else env
    base = env.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(base) / APP_NAME


def get_log_path(env: Mapping[str, str] | None = None) -> Path:
    return get_state_dir(env) / "dashboard.log"


def get_config_paths(env: Mapping[str, str] | None = None) -> list[Path]:
    """Candidate config files, lowest precedence first.

    Later files override keys from earlier ones.
    """
    return [
        Path("/etc") / f"{APP_NAME}.yaml",
        get_user_config_dir(env) / "config.yaml",
        Path.cwd() / f"{APP_NAME}.yaml",
    ]


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping at the top level")
    return data


def _positive_float(value: Any, key: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    if number <= 0:
        raise ConfigError(f"'{key}' must be positive, got {value!r}")
    return number


def _repository_specs(entries: list[Any]) -> list[RepositorySpec]:
    """Build specs from the 'repos' entries, rejecting repeated watch targets."""
    specs: list[RepositorySpec] = []
    seen: set = set()
    for entry in entries:
        spec = RepositorySpec.from_dict(entry)
        if spec.key in seen:
            raise ConfigError(f"duplicate repository entry: {spec.label}")
        seen.add(spec.key)
        specs.append(spec)
    return specs


def load_raw_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Merge the config files into one dict.

    An explicit path (argument or GH_DASHBOARD_CONFIG) must exist and is the
    only file read. Otherwise every existing default location is layered.
    """
    env = os.environ if env is None else env
    explicit = path or env.get(ENV_CONFIG)

    if explicit:
        explicit = Path(explicit).expanduser()
        if not explicit.is_file():
            raise ConfigError(f"config file not found: {explicit}")
        return _read_yaml(explicit)

    merged: dict[str, Any] = {}
    for candidate in get_config_paths(env):
        if candidate.is_file():
            merged.update(_read_yaml(candidate))
    return merged


def load_settings(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load and validate dashboard settings.

    Raises:
        ConfigError: If a config file is unreadable or a value is invalid
    """
    env = os.environ if env is None else env
    raw = load_raw_config(path, env)

    unknown = set(raw) - KNOWN_KEYS
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(sorted(unknown))}")

    if env.get(ENV_HOST):
        raw["host"] = env[ENV_HOST]
    if env.get(ENV_REFRESH_INTERVAL):
        raw["refresh_interval"] = env[ENV_REFRESH_INTERVAL]

    repos_raw = raw.get("repos") or []
    if not isinstance(repos_raw, list):
        raise ConfigError("'repos' must be a list of repository entries")

    token = raw.get("auth_token")
    return Settings(
        host=str(raw.get("host") or DEFAULT_HOST),
        auth_token=str(token) if token else None,
        refresh_interval=_positive_float(
            raw.get("refresh_interval", DEFAULT_REFRESH_INTERVAL), "refresh_interval"
        ),
        fetch_timeout=_positive_float(
            raw.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT), "fetch_timeout"
        ),
        repos=_repository_specs(repos_raw),
    )
