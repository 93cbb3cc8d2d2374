# src/duckport/importer.py
"""
Fluent file importer on top of the process backend.

    price = (
        FileImporter("products.csv")
        .run(db="shop", table="product")
        .single("SELECT price FROM {table} WHERE ean = '123'")
    )

`{table}` in read-back SQL is replaced with the imported table name; with no
SQL at all, the first 100 rows are returned.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

from duckport.backends.process import ProcessBackend
from duckport.config.settings import DuckportConfig, load_config
from duckport.errors import InvalidStateError, SourceFileNotFoundError
from duckport.results import QueryResult
from duckport.sql.builder import normalize_kind

DEFAULT_SELECT = "SELECT * FROM {table} LIMIT 100;"


class FileImporter:
    def __init__(
        self,
        file: str,
        options: Optional[Mapping[str, Any]] = None,
        *,
        config: Optional[DuckportConfig] = None,
        backend: Optional[ProcessBackend] = None,
    ):
        """
        Raises:
            SourceFileNotFoundError: `file` does not exist.
            UnsupportedPlatformError / MissingBinaryError: no usable CLI binary.
        """
        self.config = config or load_config()
        self.backend = backend or ProcessBackend(self.config)
        if not (self.backend.workdir / file).is_file():
            raise SourceFileNotFoundError(str(file))
        self.backend.resolver.resolve_binary()

        self.file = str(file)
        self.options = dict(options or {})
        self.kind: Optional[str] = None
        self._override = False
        self.database: Optional[str] = None
        self.table: Optional[str] = None

    @property
    def errors(self):
        return self.backend.errors

    # ---------- Fluent settings ----------

    def as_csv(self) -> "FileImporter":
        self.kind = "csv"
        return self

    def as_json(self) -> "FileImporter":
        self.kind = "json"
        return self

    def as_parquet(self) -> "FileImporter":
        self.kind = "parquet"
        return self

    def as_kind(self, kind: str) -> "FileImporter":
        self.kind = normalize_kind(kind)
        return self

    def override(self) -> "FileImporter":
        """Drop the existing database (and sidecar files) before importing."""
        self._override = True
        return self

    # ---------- Actions ----------

    def run(self, db: Optional[str] = None, table: str = "temp") -> "FileImporter":
        self.backend.import_file(
            self.file,
            table,
            kind=self.kind,
            options=self.options,
            database=db,
            override=self._override,
        )
        path = self.backend.database_path
        self.database = str(path.with_suffix("")) if path is not None else None
        self.table = self.backend.table
        return self

    def query(self, sql: Optional[str] = None) -> QueryResult:
        return self.backend.query(self._format_query(sql))

    def single(self, sql: Optional[str] = None) -> Any:
        return self.backend.query_single(self._format_query(sql))

    @property
    def database_file(self) -> Optional[Path]:
        return self.backend.database_path

    def _format_query(self, sql: Optional[str]) -> str:
        if self.table is None:
            raise InvalidStateError("Nothing imported yet; call run() first")
        return (sql or DEFAULT_SELECT).replace("{table}", self.table)
