# src/duckport/backends/native/marshal.py
"""
Convert a `duckdb_result` into a host-owned QueryResult.

Ownership rule: every buffer returned by `duckdb_value_varchar` belongs to
the marshaler and is released with `duckdb_free` right after its bytes are
copied into a Python str. No foreign pointer outlives the cell it was read
for. Column names are owned by the result itself and are only copied.

The result object is NOT destroyed here; the caller does that in its own
`finally`.
"""

from __future__ import annotations

import ctypes
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from duckport.backends.native.ffi import DuckDBResult, DuckDBType, decode
from duckport.errors import QueryError
from duckport.results import QueryResult, unique_columns

_SIGNED = {DuckDBType.TINYINT, DuckDBType.SMALLINT, DuckDBType.INTEGER, DuckDBType.BIGINT}
_UNSIGNED = {DuckDBType.UTINYINT, DuckDBType.USMALLINT, DuckDBType.UINTEGER, DuckDBType.UBIGINT}
_FLOATING = {DuckDBType.FLOAT, DuckDBType.DOUBLE}
_WIDE_INT = {DuckDBType.HUGEINT, DuckDBType.UHUGEINT}

# A non-NULL cell the engine has no VARCHAR projection for (LIST, STRUCT, ...).
_UNREADABLE = object()


@contextmanager
def owned_buffer(lib: Any, ptr: Optional[int]) -> Iterator[Optional[int]]:
    """Yield `ptr`, then duckdb_free it whatever happens in between."""
    try:
        yield ptr
    finally:
        if ptr:
            lib.duckdb_free(ptr)


class ResultMarshaler:
    """
    Walks columns, then the full row x column grid.

    typed=False: every value is its VARCHAR projection (str) or None.
    typed=True:  BOOLEAN -> bool, integer types -> int, FLOAT/DOUBLE ->
                 float; everything else (DECIMAL, dates, ...) stays str.

    A non-NULL cell with no VARCHAR projection raises QueryError instead of
    being reported as NULL.
    """

    def __init__(self, lib: Any, typed: bool = False):
        self._lib = lib
        self.typed = typed

    def extract(self, result: DuckDBResult) -> QueryResult:
        lib = self._lib
        ref = ctypes.byref(result)

        ncols = int(lib.duckdb_column_count(ref))
        nrows = int(lib.duckdb_row_count(ref))

        names = [decode(lib.duckdb_column_name(ref, c)) or f"column{c}" for c in range(ncols)]
        columns = unique_columns(names)
        readers = [self._reader_for(ref, c) for c in range(ncols)]

        rows: List[Dict[str, Any]] = []
        for r in range(nrows):
            row: Dict[str, Any] = {}
            for c in range(ncols):
                if lib.duckdb_value_is_null(ref, c, r):
                    row[columns[c]] = None
                else:
                    value = readers[c](ref, c, r)
                    if value is _UNREADABLE:
                        raise self._unreadable(ref, columns[c], c)
                    row[columns[c]] = value
            rows.append(row)

        return QueryResult(columns=columns, rows=rows)

    # ---------- Cell readers ----------

    def _reader_for(self, ref: Any, col: int) -> Callable[[Any, int, int], Any]:
        if not self.typed:
            return self._varchar

        type_id = int(self._lib.duckdb_column_type(ref, col))
        if type_id == DuckDBType.BOOLEAN:
            return lambda res, c, r: bool(self._lib.duckdb_value_boolean(res, c, r))
        if type_id in _SIGNED:
            return lambda res, c, r: int(self._lib.duckdb_value_int64(res, c, r))
        if type_id in _UNSIGNED:
            return lambda res, c, r: int(self._lib.duckdb_value_uint64(res, c, r))
        if type_id in _FLOATING:
            return lambda res, c, r: float(self._lib.duckdb_value_double(res, c, r))
        if type_id in _WIDE_INT:
            return self._wide_int
        return self._varchar

    def _unreadable(self, ref: Any, column: str, col: int) -> QueryError:
        type_name = DuckDBType.name_of(int(self._lib.duckdb_column_type(ref, col)))
        return QueryError(
            f"Column '{column}' of type {type_name} has no text representation; "
            f"cast it in SQL (e.g. CAST({column} AS VARCHAR))"
        )

    def _varchar(self, ref: Any, col: int, row: int) -> Any:
        ptr = self._lib.duckdb_value_varchar(ref, col, row)
        with owned_buffer(self._lib, ptr):
            if not ptr:
                return _UNREADABLE
            return ctypes.string_at(ptr).decode("utf-8", errors="replace")

    def _wide_int(self, ref: Any, col: int, row: int) -> Any:
        text = self._varchar(ref, col, row)
        return text if text is _UNREADABLE else int(text)
