"""TOML-based settings.

Loads ~/.carbonpick/defaults.toml (global) and carbonpick.toml (project),
merges them, and applies environment overrides. Example project file:

    [api]
    endpoint_url = "http://localhost:5000"
    timeout = 10

    [catalog]
    max_workers = 16

    [providers]
    gcp = "Google Cloud"
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from carbonpick.constants import (
    CACHE_DIR,
    DEFAULT_MAX_WORKERS,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    ENDPOINT_ENV_VAR,
    GLOBAL_CONFIG_PATH,
    PROJECT_CONFIG_NAME,
    PROVIDER_NAMES,
)
from carbonpick.core.exceptions import ConfigurationError

type RawConfig = dict[str, Any]


@dataclass(frozen=True, slots=True)
class Settings:
    endpoint_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    cache_dir: Path = CACHE_DIR
    max_workers: int = DEFAULT_MAX_WORKERS
    providers: Mapping[str, str] = field(default_factory=lambda: dict(PROVIDER_NAMES))

    def require_endpoint(self) -> str:
        if not self.endpoint_url:
            raise ConfigurationError(
                f"No carbon API endpoint configured. Set {ENDPOINT_ENV_VAR} "
                f"or [api].endpoint_url in {PROJECT_CONFIG_NAME}"
            )
        return self.endpoint_url


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("api", {})
    merged.setdefault("catalog", {})
    merged.setdefault("providers", {})
    return merged


def _positive(section: str, key: str, value: Any, cast: type[int] | type[float]) -> Any:
    try:
        number = cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"[{section}].{key} must be a number, got {value!r}") from e
    if number <= 0:
        raise ConfigurationError(f"[{section}].{key} must be > 0, got {number}")
    return number


def load_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    config = load_config(project_dir=project_dir, global_path=global_path)
    env = os.environ if env is None else env

    api = config["api"]
    catalog = config["catalog"]

    endpoint = env.get(ENDPOINT_ENV_VAR) or api.get("endpoint_url")
    cache_dir = catalog.get("cache_dir")

    return Settings(
        endpoint_url=endpoint or None,
        timeout=_positive("api", "timeout", api.get("timeout", DEFAULT_TIMEOUT), float),
        retries=_positive("api", "retries", api.get("retries", DEFAULT_RETRIES), int),
        cache_dir=Path(cache_dir).expanduser() if cache_dir else CACHE_DIR,
        max_workers=_positive(
            "catalog", "max_workers", catalog.get("max_workers", DEFAULT_MAX_WORKERS), int
        ),
        providers={**PROVIDER_NAMES, **{str(k).lower(): str(v) for k, v in config["providers"].items()}},
    )


def resolve_provider(settings: Settings, provider: str | None) -> str:
    """Display name for a provider key.

    Raises:
        ConfigurationError: If no provider was given or it is unknown.
    """
    if not provider:
        raise ConfigurationError("No provider given")
    name = settings.providers.get(provider.lower())
    if name is None:
        valid = ", ".join(sorted(settings.providers))
        raise ConfigurationError(f"Provider '{provider}' doesn't exist. Valid: {valid}")
    return name
