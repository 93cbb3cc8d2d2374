# src/duckport/backends/native/backend.py
"""
Native backend: libduckdb through ctypes.

States:

    UNCONNECTED --connect()--> CONNECTED --disconnect()--> UNCONNECTED
    UNCONNECTED | CONNECTED --close()--> CLOSED

The database/connection handle pair is opened database-first and released
connection-first. It is never partially valid: a failed `connect` releases
whatever it opened and leaves both handles unset. `close()` is terminal and
runs on context-manager exit and, as a fallback, on garbage collection.
"""

from __future__ import annotations

import ctypes
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional

from duckport.backends.base import Backend
from duckport.backends.native.ffi import DUCKDB_SUCCESS, DuckDBResult, decode, load_library
from duckport.backends.native.marshal import ResultMarshaler
from duckport.backends.registry import register_backend
from duckport.config.settings import DuckportConfig, load_config
from duckport.errors import (
    DatabaseConnectionError,
    DuckportError,
    ErrorContext,
    InvalidStateError,
    QueryError,
    SourceFileNotFoundError,
    records_errors,
)
from duckport.logging import get_logger, log_exception, set_debug
from duckport.platform.resolver import PlatformResolver
from duckport.results import QueryResult
from duckport.sql.builder import (
    build_create_statement,
    default_database_name,
    detect_file_kind,
    normalize_kind,
)
from duckport.sql.sql_utils import lit_str, merge_options, sanitize_table_name

_logger = get_logger(__name__)

MEMORY = ":memory:"


class NativeState(str, Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


def _is_local_file(path: str) -> bool:
    if "://" in path:
        return False
    return not any(ch in path for ch in "*?[")


@register_backend("native")
class NativeBackend(Backend):
    def __init__(
        self,
        database: Optional[str] = None,
        *,
        config: Optional[DuckportConfig] = None,
        resolver: Optional[PlatformResolver] = None,
        library: Any = None,
        typed: Optional[bool] = None,
    ):
        """
        Args:
            database: Database file to connect to right away (":memory:" for
                an in-memory database). None leaves the backend unconnected.
            config: Resolved configuration (default: load_config()).
            resolver: Platform resolver used to locate libduckdb.
            library: An already loaded library object; skips resolution.
            typed: Typed result values; defaults to config.typed_results.
        """
        self.errors = ErrorContext()
        self._lib: Any = None
        self._db: Optional[ctypes.c_void_p] = None
        self._conn: Optional[ctypes.c_void_p] = None
        self._state = NativeState.UNCONNECTED
        self._database_path = ""

        try:
            self.config = config or load_config()
            if self.config.debug:
                set_debug(True)
            if library is None:
                resolver = resolver or PlatformResolver.from_config(self.config)
                library = load_library(resolver.resolve_library())
            self._lib = library
        except Exception as e:
            self.errors.record_exception(e)
            raise

        use_typed = self.config.typed_results if typed is None else typed
        self._marshaler = ResultMarshaler(self._lib, typed=use_typed)

        if database is not None:
            self.connect(database)

    # ---------- State ----------

    @property
    def state(self) -> NativeState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is NativeState.CONNECTED

    @property
    def database_path(self) -> str:
        return self._database_path

    @property
    def typed(self) -> bool:
        return self._marshaler.typed

    def _require_connected(self, operation: str) -> None:
        if self._state is NativeState.CLOSED:
            raise InvalidStateError(f"Cannot {operation}: backend is closed")
        if self._state is not NativeState.CONNECTED:
            raise InvalidStateError(f"Cannot {operation}: not connected to a database")

    # ---------- Lifecycle ----------

    @records_errors
    def connect(self, path: str = MEMORY) -> "NativeBackend":
        """
        Open `path` and a connection on it, replacing any current pair.

        Raises:
            DatabaseConnectionError: open or connect failed; nothing stays open.
            InvalidStateError: the backend was closed.
        """
        if self._state is NativeState.CLOSED:
            raise InvalidStateError("Cannot connect: backend is closed")
        if self._state is NativeState.CONNECTED:
            self.disconnect()

        path = str(path) if path else MEMORY
        encoded = None if path == MEMORY else path.encode("utf-8")
        db = ctypes.c_void_p()
        conn = ctypes.c_void_p()
        try:
            if self._lib.duckdb_open(encoded, ctypes.byref(db)) != DUCKDB_SUCCESS:
                raise DatabaseConnectionError(f"Failed to open database: {path}")
            if self._lib.duckdb_connect(db, ctypes.byref(conn)) != DUCKDB_SUCCESS:
                raise DatabaseConnectionError(f"Failed to connect to database: {path}")
        except BaseException as e:
            _logger.warning("Connect to %s failed", path)
            self._release(db, conn)
            if isinstance(e, DuckportError) or not isinstance(e, Exception):
                raise
            raise DatabaseConnectionError(f"Failed to open database {path}: {e}") from e

        self._db, self._conn = db, conn
        self._database_path = path
        self._state = NativeState.CONNECTED
        _logger.debug("Connected to database: %s", path)
        return self

    def disconnect(self) -> "NativeBackend":
        """Release connection then database. Safe to call repeatedly."""
        db, conn = self._db, self._conn
        self._db = self._conn = None
        if db is not None and conn is not None:
            self._release(db, conn)
            _logger.debug("Disconnected from database: %s", self._database_path)
        if self._state is NativeState.CONNECTED:
            self._state = NativeState.UNCONNECTED
        return self

    def close(self) -> None:
        """Disconnect and make the backend unusable."""
        self.disconnect()
        self._state = NativeState.CLOSED

    def _release(self, db: ctypes.c_void_p, conn: ctypes.c_void_p) -> None:
        if self._lib is None:
            return
        try:
            if conn.value:
                self._lib.duckdb_disconnect(ctypes.byref(conn))
        finally:
            conn.value = None
            if db.value:
                self._lib.duckdb_close(ctypes.byref(db))
            db.value = None

    def __del__(self) -> None:
        # Fallback only; callers should use close() or a with-block.
        if getattr(self, "_state", None) is NativeState.CONNECTED:
            try:
                self.disconnect()
            except Exception as e:
                log_exception(_logger, "Failed to release database handles", e)

    # ---------- Queries ----------

    @records_errors
    def query(self, sql: str) -> QueryResult:
        """
        Execute `sql` and return every row.

        Raises:
            InvalidStateError: not connected (no foreign call is made).
            QueryError: the engine rejected the statement; carries its message.
        """
        self._require_connected("query")
        result = DuckDBResult()
        ref = ctypes.byref(result)
        try:
            status = self._lib.duckdb_query(self._conn, sql.encode("utf-8"), ref)
            if status != DUCKDB_SUCCESS:
                message = decode(self._lib.duckdb_result_error(ref)) or "Query execution failed"
                raise QueryError(message, sql=sql)
            data = self._marshaler.extract(result)
        finally:
            self._lib.duckdb_destroy_result(ref)

        _logger.debug("Query returned %d row(s)", len(data))
        return data

    @records_errors
    def query_single(self, sql: str) -> Any:
        """Row 0 / column 0 of the result, or None when there are no rows."""
        return self.query(sql).scalar()

    # ---------- Imports ----------

    def _import(
        self,
        kind: str,
        path: str,
        table: str,
        options: Optional[Mapping[str, Any]],
    ) -> "NativeBackend":
        self._require_connected(f"import {kind}")
        sql = build_create_statement(
            kind,
            path,
            table,
            merge_options(self.config.options_for(kind), options),
        )
        if _is_local_file(str(path)) and not Path(path).is_file():
            raise SourceFileNotFoundError(str(path))
        self.query(sql)
        _logger.debug("%s file imported: %s -> %s", kind.upper(), path, table)
        return self

    @records_errors
    def import_csv(
        self, path: str, table: str, options: Optional[Mapping[str, Any]] = None
    ) -> "NativeBackend":
        return self._import("csv", path, table, options)

    @records_errors
    def import_json(
        self, path: str, table: str, options: Optional[Mapping[str, Any]] = None
    ) -> "NativeBackend":
        return self._import("json", path, table, options)

    @records_errors
    def import_parquet(
        self, path: str, table: str, options: Optional[Mapping[str, Any]] = None
    ) -> "NativeBackend":
        return self._import("parquet", path, table, options)

    @records_errors
    def import_file(
        self,
        path: str,
        table: Optional[str] = None,
        *,
        kind: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "NativeBackend":
        """Import by inferred (or forced) kind; table defaults to the file stem."""
        resolved = normalize_kind(kind) if kind else detect_file_kind(str(path))
        target = table or sanitize_table_name(default_database_name(str(path)))
        return self._import(resolved, path, target, options)

    # ---------- Introspection ----------

    def list_tables(self) -> List[str]:
        result = self.query(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = 'main' ORDER BY table_name"
        )
        return [row["table_name"] for row in result]

    def table_info(self, table: str) -> QueryResult:
        return self.query(f"PRAGMA table_info({lit_str(table)})")

    def __repr__(self) -> str:
        return f"NativeBackend(state={self._state.value}, database={self._database_path!r})"
