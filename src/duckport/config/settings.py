# src/duckport/config/settings.py
"""
Configuration for duckport.

Sources, highest priority first:
  1. Keyword overrides passed to `load_config(...)`
  2. Environment variables (DUCKPORT_*)
  3. YAML file: $DUCKPORT_CONFIG, else ./.duckport/config.yml
  4. Model defaults

YAML layout (every key optional):

    bin_dir: /opt/duckdb/bin
    binary: /usr/local/bin/duckdb
    library: /usr/local/lib/libduckdb.so
    temp_dir: /tmp
    timeout_s: 600
    typed_results: false
    debug: false
    default_options:
      csv: {all_varchar: true}
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field

from duckport.errors import InvalidSpecError

OptionValue = Union[bool, int, float, str, None]

CONFIG_ENV = "DUCKPORT_CONFIG"
DEFAULT_CONFIG_PATH = Path(".duckport") / "config.yml"

# env var -> config field
_ENV_FIELDS: Dict[str, str] = {
    "DUCKPORT_BIN_DIR": "bin_dir",
    "DUCKPORT_BINARY": "binary",
    "DUCKPORT_LIBRARY": "library",
    "DUCKPORT_TEMP_DIR": "temp_dir",
    "DUCKPORT_TIMEOUT": "timeout_s",
    "DUCKPORT_TYPED": "typed_results",
    "DUCKPORT_DEBUG": "debug",
}


def _package_bin_dir() -> str:
    return str(Path(__file__).resolve().parent.parent / "bin")


class DuckportConfig(BaseModel):
    """Resolved runtime configuration."""

    bin_dir: str = Field(
        default_factory=_package_bin_dir,
        description="Root of the platform artifact layout (win/, lin/).",
    )
    binary: Optional[str] = Field(None, description="Explicit path to the duckdb CLI binary.")
    library: Optional[str] = Field(None, description="Explicit path to libduckdb.")
    temp_dir: Optional[str] = Field(None, description="Directory for generated scripts.")
    timeout_s: Optional[float] = Field(None, description="Upper bound for one engine process.")
    typed_results: bool = Field(False, description="Native results as bool/int/float where typed.")
    debug: bool = False
    default_options: Dict[str, Dict[str, OptionValue]] = Field(default_factory=dict)

    def options_for(self, kind: str) -> Dict[str, OptionValue]:
        return dict(self.default_options.get(kind, {}))


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise InvalidSpecError(f"Invalid config file {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidSpecError(f"Config file {path} must contain a mapping")
    return raw


def _env_values() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for env, name in _ENV_FIELDS.items():
        value = os.getenv(env)
        if value is None or value == "":
            continue
        if name in ("typed_results", "debug"):
            out[name] = value.strip().lower() in ("1", "true", "yes", "on")
        else:
            out[name] = value
    return out


def load_config(config_path: Optional[str] = None, **overrides: Any) -> DuckportConfig:
    """
    Resolve a DuckportConfig from file, environment and overrides.

    Raises:
        InvalidSpecError: the YAML file exists but is not a mapping, or a
            value fails validation.
    """
    values: Dict[str, Any] = {}

    path_str = config_path or os.getenv(CONFIG_ENV)
    path = Path(path_str) if path_str else Path.cwd() / DEFAULT_CONFIG_PATH
    if path.is_file():
        values.update(_read_yaml(path))
    elif path_str:
        raise InvalidSpecError(f"Config file not found: {path}")

    values.update(_env_values())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return DuckportConfig(**values)
    except ValueError as e:
        raise InvalidSpecError(f"Invalid configuration: {e}") from e
