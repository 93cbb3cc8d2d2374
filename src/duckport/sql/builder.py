# src/duckport/sql/builder.py
"""
ImportSpec construction and script/statement rendering.

Two renderings share the same option rules (see `sql_utils.render_options`):

* `build(spec)` -> the four-statement script the process backend hands to
  the DuckDB CLI. The target is an attached SQLite file so results can be
  read back without DuckDB.
* `build_create_statement(...)` -> a single CREATE OR REPLACE statement the
  native backend runs on its own connection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, Mapping, Optional

from duckport.errors import InvalidSpecError, UnsupportedFileTypeError
from duckport.sql.sql_utils import (
    lit_str,
    merge_options,
    render_options,
    sanitize_table_name,
)

# kind -> engine reader function
READERS: Dict[str, str] = {
    "csv": "read_csv_auto",
    "json": "read_json_auto",
    "parquet": "read_parquet",
}

# extension (after stripping .gz) -> kind
EXTENSIONS: Dict[str, str] = {
    ".csv": "csv",
    ".tsv": "csv",
    ".json": "json",
    ".jsonl": "json",
    ".ndjson": "json",
    ".parquet": "parquet",
    ".pq": "parquet",
}

# Defaults for the attached-SQLite script. SQLite has no native types for
# most DuckDB columns, so CSV/JSON land as text.
SCRIPT_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "csv": {"all_varchar": True},
    "json": {},
    "parquet": {},
}

# Defaults for the native CREATE OR REPLACE statement.
NATIVE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "csv": {"header": True, "auto_detect": True, "all_varchar": False},
    "json": {"auto_detect": True, "format": "auto"},
    "parquet": {},
}

ATTACH_ALIAS = "db"


# =============================================================================
# File kind
# =============================================================================


def _strip_gz(name: str) -> str:
    return name[:-3] if name.lower().endswith(".gz") else name


def detect_file_kind(path: str) -> str:
    """`data.csv.gz` -> csv, `data.json` -> json, `data.parquet` -> parquet."""
    suffix = PurePath(_strip_gz(PurePath(path).name)).suffix.lower()
    kind = EXTENSIONS.get(suffix)
    if kind is None:
        raise UnsupportedFileTypeError(path)
    return kind


def normalize_kind(kind: str) -> str:
    k = (kind or "").strip().lower()
    if k not in READERS:
        raise UnsupportedFileTypeError(kind)
    return k


def reader_function(kind: str) -> str:
    return READERS[normalize_kind(kind)]


def default_database_name(path: str) -> str:
    """`/data/products.csv.gz` -> `products`."""
    name = _strip_gz(PurePath(path).name)
    stem = PurePath(name).stem
    return stem or name


# =============================================================================
# ImportSpec
# =============================================================================


@dataclass(frozen=True)
class ImportSpec:
    source_path: str
    file_kind: str
    database_name: str
    table_name: str
    options: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def create(
        source_path: str,
        *,
        database_name: Optional[str] = None,
        table_name: str = "temp",
        file_kind: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> "ImportSpec":
        """
        Normalize an import request.

        Args:
            source_path: File to import. Not opened here.
            database_name: Target SQLite store (without `.db`). Defaults to
                the source file stem.
            table_name: Target table; sanitized to [A-Za-z0-9_].
            file_kind: csv | json | parquet. Inferred from the extension
                (after stripping `.gz`) when omitted.
            options: Caller reader options; override `defaults`.
            defaults: Base options. Defaults to SCRIPT_DEFAULTS[kind].

        Raises:
            UnsupportedFileTypeError: unknown kind or extension.
            InvalidSpecError: empty table or database name.
        """
        kind = normalize_kind(file_kind) if file_kind else detect_file_kind(source_path)

        table = sanitize_table_name(table_name or "")
        if not table:
            raise InvalidSpecError("Table name must not be empty")

        db = database_name or default_database_name(source_path)
        if not db:
            raise InvalidSpecError("Database name must not be empty")

        base = SCRIPT_DEFAULTS[kind] if defaults is None else defaults
        return ImportSpec(
            source_path=str(source_path),
            file_kind=kind,
            database_name=str(db),
            table_name=table,
            options=merge_options(base, options),
        )

    @property
    def database_file(self) -> str:
        return f"{self.database_name}.db"


# =============================================================================
# Rendering
# =============================================================================


@dataclass(frozen=True)
class Script:
    """A rendered multi-statement script, one statement per line."""

    statements: tuple

    @property
    def text(self) -> str:
        return "\n".join(self.statements) + "\n"

    def __str__(self) -> str:
        return self.text


def reader_call(kind: str, path: str, options: Optional[Mapping[str, Any]] = None) -> str:
    """`read_csv_auto('<path>', k=v, ...)`; no trailing comma without options."""
    args = lit_str(str(path))
    rendered = render_options(options)
    if rendered:
        args = f"{args}, {rendered}"
    return f"{reader_function(kind)}({args})"


def build(spec: ImportSpec) -> Script:
    """Render the attach / drop / create / detach script for `spec`."""
    target = f"{ATTACH_ALIAS}.{spec.table_name}"
    call = reader_call(spec.file_kind, spec.source_path, spec.options)
    return Script(
        statements=(
            f"ATTACH {lit_str(spec.database_file)} AS {ATTACH_ALIAS} (TYPE SQLITE);",
            f"DROP TABLE IF EXISTS {target};",
            f"CREATE TABLE {target} AS SELECT * FROM {call};",
            f"DETACH {ATTACH_ALIAS};",
        )
    )


def build_create_statement(
    kind: str,
    path: str,
    table: str,
    options: Optional[Mapping[str, Any]] = None,
    *,
    defaults: Optional[Mapping[str, Any]] = None,
) -> str:
    """Render the native-backend import statement."""
    k = normalize_kind(kind)
    name = sanitize_table_name(table or "")
    if not name:
        raise InvalidSpecError("Table name must not be empty")
    base = NATIVE_DEFAULTS[k] if defaults is None else defaults
    call = reader_call(k, path, merge_options(base, options))
    return f"CREATE OR REPLACE TABLE {name} AS SELECT * FROM {call}"
