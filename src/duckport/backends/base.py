# src/duckport/backends/base.py
"""
Backend interface.

A backend runs SQL against DuckDB. Two strategies exist:

  - "process": render a script, run the duckdb CLI on it, read results back
    from the attached SQLite file.
  - "native":  call libduckdb in-process and marshal rows directly.

Both share the statement builder (duckport.sql) and surface failures the
same way: raised to the caller and recorded in `self.errors`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from duckport.errors import ErrorContext
from duckport.results import QueryResult


class Backend(ABC):
    # Human-readable identifier ("process" | "native")
    name: str = "abstract"

    errors: ErrorContext

    @abstractmethod
    def import_file(
        self,
        path: str,
        table: Optional[str] = None,
        *,
        kind: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "Backend":
        """Load `path` into `table`; returns self for chaining."""
        ...

    @abstractmethod
    def query(self, sql: str) -> QueryResult:
        ...

    def query_single(self, sql: str) -> Any:
        """Value at row 0, column 0 of `query(sql)`; None when no rows."""
        return self.query(sql).scalar()

    def close(self) -> None:
        """Release any resources held by the backend (default: nothing)."""

    @property
    def last_error(self):
        return self.errors.last_error

    def has_error(self) -> bool:
        return self.errors.has_error()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
