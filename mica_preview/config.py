"""Configuration support for the preview pipeline and its CLI."""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from .errors import ConfigError

CONFIG_FILENAMES = ("mica-preview.toml", "mica-preview.json")

ENV_PREFIX = "MICA_PREVIEW_"


@dataclass(frozen=True)
class PreviewConfig:
    """Resolved settings for one preview session and its evaluation client."""

    base_url: str = "http://localhost:8001"
    api_key: Optional[str] = None
    timeout: float = 30.0
    text_quiet_period: float = 0.5
    parameter_quiet_period: float = 0.5
    progress_quiet_period: float = 0.25
    row_limit: Optional[int] = None
    log_level: str = "info"

    def merged(self, **overrides: Any) -> "PreviewConfig":
        """Return a copy with every non-None override applied."""

        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values) if values else self


def _read_json_config(path: Path) -> Dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    return json.loads(content)


def _read_toml_config(path: Path) -> Dict[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _coerce(name: str, raw: Any, converter: Callable[[Any], Any]) -> Any:
    try:
        return converter(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for '{name}': {raw!r}") from exc


def _non_negative(name: str, raw: Any) -> float:
    value = _coerce(name, raw, float)
    if value < 0:
        raise ConfigError(f"'{name}' must not be negative")
    return value


def _parse_section(data: Mapping[str, Any]) -> Dict[str, Any]:
    section = data.get("preview", data)
    if not isinstance(section, Mapping):
        raise ConfigError("The 'preview' section must be a table")

    values: Dict[str, Any] = {}
    if section.get("base_url"):
        values["base_url"] = str(section["base_url"])
    if section.get("api_key"):
        values["api_key"] = str(section["api_key"])
    if section.get("log_level"):
        values["log_level"] = str(section["log_level"])
    for key in ("timeout", "text_quiet_period", "parameter_quiet_period", "progress_quiet_period"):
        if section.get(key) is not None:
            values[key] = _non_negative(key, section[key])
    if section.get("row_limit") is not None:
        values["row_limit"] = _coerce("row_limit", section["row_limit"], int)
    return values


def _parse_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if env.get(f"{ENV_PREFIX}BASE_URL"):
        values["base_url"] = env[f"{ENV_PREFIX}BASE_URL"]
    if env.get(f"{ENV_PREFIX}API_KEY"):
        values["api_key"] = env[f"{ENV_PREFIX}API_KEY"]
    if env.get(f"{ENV_PREFIX}LOG_LEVEL"):
        values["log_level"] = env[f"{ENV_PREFIX}LOG_LEVEL"]
    if env.get(f"{ENV_PREFIX}TIMEOUT"):
        values["timeout"] = _non_negative("timeout", env[f"{ENV_PREFIX}TIMEOUT"])
    if env.get(f"{ENV_PREFIX}ROW_LIMIT"):
        values["row_limit"] = _coerce("row_limit", env[f"{ENV_PREFIX}ROW_LIMIT"], int)
    return values


def find_config_file(root: Path) -> Optional[Path]:
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.exists():
            return candidate
    return None


def load_config(
    path: Optional[Path] = None,
    *,
    root: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> PreviewConfig:
    """Load configuration from a file (if any) and apply environment overrides.

    Precedence, lowest first: built-in defaults, the config file, then
    ``MICA_PREVIEW_*`` environment variables.
    """

    config_path = Path(path) if path is not None else find_config_file(root or Path.cwd())
    values: Dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file '{config_path}' does not exist")
        try:
            if config_path.suffix == ".json":
                data = _read_json_config(config_path)
            else:
                data = _read_toml_config(config_path)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Failed to parse config file '{config_path}': {exc}") from exc
        if not isinstance(data, Mapping):
            raise ConfigError(f"Config file '{config_path}' must contain an object")
        values.update(_parse_section(data))

    values.update(_parse_env(os.environ if env is None else env))
    return PreviewConfig(**values)


__all__ = ["CONFIG_FILENAMES", "PreviewConfig", "find_config_file", "load_config"]
