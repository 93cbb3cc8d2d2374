# src/duckport/backends/native/ffi.py
"""
ctypes binding to the DuckDB C API (libduckdb).

`SIGNATURES` is the interface descriptor: every function the native backend
calls, with its return and argument types. It is applied once per library
path when the library is loaded; a library missing any symbol is rejected
up front instead of failing mid-query.
"""

from __future__ import annotations

import ctypes
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from duckport.errors import LibraryLoadError
from duckport.logging import get_logger

_logger = get_logger(__name__)

idx_t = ctypes.c_uint64

DUCKDB_SUCCESS = 0
DUCKDB_ERROR = 1


class DuckDBResult(ctypes.Structure):
    """`duckdb_result`; the fields are engine-private, only its size matters here."""

    _fields_ = [
        ("deprecated_column_count", idx_t),
        ("deprecated_row_count", idx_t),
        ("deprecated_rows_changed", idx_t),
        ("deprecated_columns", ctypes.c_void_p),
        ("deprecated_error_message", ctypes.c_char_p),
        ("internal_data", ctypes.c_void_p),
    ]


# Column type ids (duckdb_type) used by typed extraction and error messages.
class DuckDBType:
    BOOLEAN = 1
    TINYINT = 2
    SMALLINT = 3
    INTEGER = 4
    BIGINT = 5
    UTINYINT = 6
    USMALLINT = 7
    UINTEGER = 8
    UBIGINT = 9
    FLOAT = 10
    DOUBLE = 11
    TIMESTAMP = 12
    DATE = 13
    TIME = 14
    INTERVAL = 15
    HUGEINT = 16
    VARCHAR = 17
    BLOB = 18
    DECIMAL = 19
    ENUM = 23
    LIST = 24
    STRUCT = 25
    MAP = 26
    UUID = 27
    UNION = 28
    UHUGEINT = 32
    ARRAY = 33

    @classmethod
    def name_of(cls, type_id: int) -> str:
        for name, value in vars(cls).items():
            if name.isupper() and value == type_id:
                return name
        return f"TYPE_{type_id}"


_RES = ctypes.POINTER(DuckDBResult)
_HANDLE_OUT = ctypes.POINTER(ctypes.c_void_p)

# name -> (restype, argtypes)
SIGNATURES: Dict[str, Tuple[Any, List[Any]]] = {
    "duckdb_open": (ctypes.c_int, [ctypes.c_char_p, _HANDLE_OUT]),
    "duckdb_close": (None, [_HANDLE_OUT]),
    "duckdb_connect": (ctypes.c_int, [ctypes.c_void_p, _HANDLE_OUT]),
    "duckdb_disconnect": (None, [_HANDLE_OUT]),
    "duckdb_query": (ctypes.c_int, [ctypes.c_void_p, ctypes.c_char_p, _RES]),
    "duckdb_destroy_result": (None, [_RES]),
    "duckdb_result_error": (ctypes.c_char_p, [_RES]),
    "duckdb_column_count": (idx_t, [_RES]),
    "duckdb_row_count": (idx_t, [_RES]),
    "duckdb_column_name": (ctypes.c_char_p, [_RES, idx_t]),
    "duckdb_column_type": (ctypes.c_int, [_RES, idx_t]),
    "duckdb_value_is_null": (ctypes.c_bool, [_RES, idx_t, idx_t]),
    # Returned buffer is caller-owned; c_void_p keeps ctypes from copying it
    # so it can be released with duckdb_free.
    "duckdb_value_varchar": (ctypes.c_void_p, [_RES, idx_t, idx_t]),
    "duckdb_value_boolean": (ctypes.c_bool, [_RES, idx_t, idx_t]),
    "duckdb_value_int64": (ctypes.c_int64, [_RES, idx_t, idx_t]),
    "duckdb_value_uint64": (ctypes.c_uint64, [_RES, idx_t, idx_t]),
    "duckdb_value_double": (ctypes.c_double, [_RES, idx_t, idx_t]),
    "duckdb_free": (None, [ctypes.c_void_p]),
}

_LOADED: Dict[str, ctypes.CDLL] = {}


def apply_signatures(lib: Any) -> Any:
    """Set restype/argtypes for every function in SIGNATURES on `lib`."""
    missing = []
    for name, (restype, argtypes) in SIGNATURES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError:
            missing.append(name)
            continue
        fn.restype = restype
        fn.argtypes = argtypes
    if missing:
        raise LibraryLoadError(
            f"DuckDB library is missing required symbols: {', '.join(missing)}"
        )
    return lib


def load_library(path: Path) -> ctypes.CDLL:
    """
    Load libduckdb from `path` (cached per resolved path).

    Raises:
        LibraryLoadError: the file cannot be loaded or lacks a symbol.
    """
    key = str(Path(path).resolve())
    cached = _LOADED.get(key)
    if cached is not None:
        return cached

    try:
        lib = ctypes.CDLL(key)
    except OSError as e:
        raise LibraryLoadError(f"Cannot load DuckDB library {key}: {e}") from e

    apply_signatures(lib)
    _LOADED[key] = lib
    _logger.debug("Loaded DuckDB library: %s", key)
    return lib


def decode(raw: Optional[bytes]) -> Optional[str]:
    if raw is None:
        return None
    return raw.decode("utf-8", errors="replace")
