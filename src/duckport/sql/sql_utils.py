# src/duckport/sql/sql_utils.py
"""
Shared SQL rendering helpers for both backends.

Pure functions only: nothing here touches the filesystem or the engine.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

_IDENT_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def esc_ident(name: str) -> str:
    """Quote a SQL identifier, doubling embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


def lit_str(value: str) -> str:
    """Single-quote a string literal, doubling embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def lit_value(value: Any) -> str:
    """
    Render one option value.

    - bool  -> true / false (bare)
    - str   -> single-quoted
    - None  -> NULL
    - other -> str(value), bare
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return lit_str(value)
    return str(value)


def render_options(options: Optional[Mapping[str, Any]]) -> str:
    """Render `k=v, ...` in insertion order (never sorted)."""
    if not options:
        return ""
    return ", ".join(f"{key}={lit_value(value)}" for key, value in options.items())


def merge_options(
    defaults: Optional[Mapping[str, Any]], overrides: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    """
    Defaults first, caller overrides win.

    A key overridden by the caller keeps the position it had in `defaults`;
    new keys are appended in the caller's order.
    """
    merged: Dict[str, Any] = dict(defaults or {})
    for key, value in (overrides or {}).items():
        merged[key] = value
    return merged


def sanitize_table_name(name: str) -> str:
    """Replace every character outside [A-Za-z0-9_] with '_'."""
    return _IDENT_UNSAFE.sub("_", name)
