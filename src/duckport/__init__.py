# src/duckport/__init__.py
"""
duckport - SQL over large CSV/JSON/Parquet files through DuckDB

Two execution backends share one interface:

    # Native: libduckdb in-process, rows come back directly
    import duckport
    with duckport.connect("shop.duckdb") as db:
        db.import_csv("products.csv", "product")
        price = db.query_single("SELECT price FROM product WHERE ean = '123'")

    # Process: duckdb CLI materializes into SQLite, read back afterwards
    from duckport import FileImporter
    price = FileImporter("products.csv").run(db="shop", table="product").single(
        "SELECT price FROM {table} WHERE ean = '123'"
    )
"""

from duckport.version import VERSION as __version__

from typing import Any, Mapping, Optional

from duckport.backends import Backend, available_backends, pick_backend
from duckport.backends.native.backend import NativeBackend, NativeState
from duckport.backends.process import ProcessBackend
from duckport.config.settings import DuckportConfig, load_config
from duckport.errors import (
    DatabaseConnectionError,
    DuckportError,
    ErrorContext,
    ErrorState,
    ExecutionError,
    InvalidSpecError,
    InvalidStateError,
    LibraryLoadError,
    MissingBinaryError,
    QueryError,
    ReadBackError,
    ScriptWriteError,
    SourceFileNotFoundError,
    SubprocessSpawnError,
    UnsupportedFileTypeError,
    UnsupportedPlatformError,
)
from duckport.importer import FileImporter
from duckport.platform.resolver import PlatformResolver
from duckport.readers.sqlite_reader import SqliteReader
from duckport.results import ExitOutcome, QueryResult
from duckport.sql.builder import ImportSpec, Script, build, build_create_statement


def connect(database: str = ":memory:", **kwargs: Any) -> NativeBackend:
    """Open a native backend connected to `database`."""
    return NativeBackend(database, **kwargs)


def import_file(
    path: str,
    table: str = "temp",
    *,
    database: Optional[str] = None,
    kind: Optional[str] = None,
    options: Optional[Mapping[str, Any]] = None,
    override: bool = False,
    backend: str = "process",
    **kwargs: Any,
) -> Backend:
    """
    Import `path` into `table` using the named backend and return it.

    For the process backend `database` names the SQLite file (without
    `.db`); for the native backend it is the DuckDB database path
    (default: in-memory).
    """
    if backend == "native":
        nb = NativeBackend(database or ":memory:", **kwargs)
        try:
            return nb.import_file(path, table, kind=kind, options=options)
        except Exception:
            nb.close()
            raise
    pb = pick_backend(backend, **kwargs)
    return pb.import_file(
        path, table, kind=kind, options=options, database=database, override=override
    )


__all__ = [
    "__version__",
    "Backend",
    "DatabaseConnectionError",
    "DuckportConfig",
    "DuckportError",
    "ErrorContext",
    "ErrorState",
    "ExecutionError",
    "ExitOutcome",
    "FileImporter",
    "ImportSpec",
    "InvalidSpecError",
    "InvalidStateError",
    "LibraryLoadError",
    "MissingBinaryError",
    "NativeBackend",
    "NativeState",
    "PlatformResolver",
    "ProcessBackend",
    "QueryError",
    "QueryResult",
    "ReadBackError",
    "Script",
    "ScriptWriteError",
    "SourceFileNotFoundError",
    "SqliteReader",
    "SubprocessSpawnError",
    "UnsupportedFileTypeError",
    "UnsupportedPlatformError",
    "available_backends",
    "build",
    "build_create_statement",
    "connect",
    "import_file",
    "load_config",
    "pick_backend",
]
