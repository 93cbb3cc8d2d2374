# src/duckport/readers/sqlite_reader.py
"""
Read-back of tables the process backend materialized into SQLite files.

Opened read-only so a mistyped path never creates an empty database.
"""

from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, List, Optional, Sequence

from duckport.errors import ReadBackError
from duckport.logging import get_logger
from duckport.results import QueryResult

_logger = get_logger(__name__)


class SqliteReader:
    def __init__(self, db_path: str):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        if not self.db_path.is_file():
            raise ReadBackError(f"Database not found: {self.db_path}")
        uri = self.db_path.resolve().as_uri() + "?mode=ro"
        return sqlite3.connect(uri, uri=True)

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        try:
            with closing(self._connect()) as con:
                cur = con.execute(sql, tuple(params or ()))
                columns = [d[0] for d in cur.description] if cur.description else []
                rows = cur.fetchall()
        except sqlite3.Error as e:
            raise ReadBackError(f"{e} (database: {self.db_path})") from e
        _logger.debug("Read back %d row(s) from %s", len(rows), self.db_path)
        return QueryResult.from_tuples(columns, rows)

    def single(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        return self.query(sql, params).scalar()

    def list_tables(self) -> List[str]:
        result = self.query(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        return [row["name"] for row in result]
