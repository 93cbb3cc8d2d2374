# src/duckport/errors.py
"""
Error taxonomy and last-error diagnostics.

Every failure raised by duckport is a `DuckportError` carrying a stable
string `code`. Backends additionally record the most recent failure in an
`ErrorContext` owned by the backend instance, so callers can either catch
immediately or inspect `backend.errors.last_error` after a batch of calls.

The slot is overwritten on every failure and is never cleared by a
successful call; use `ErrorContext.clear()` to reset it explicitly.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# Exceptions
# =============================================================================


class DuckportError(Exception):
    """Base class for all duckport failures."""

    code = "DUCKPORT_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class UnsupportedPlatformError(DuckportError):
    """The host OS family has no DuckDB artifacts (only Windows and Linux do)."""

    code = "PLATFORM_UNSUPPORTED"

    def __init__(self, system: str):
        super().__init__(f"Unsupported platform: {system}")
        self.system = system


class MissingBinaryError(DuckportError):
    """Supported platform, but the resolved binary or library is not on disk."""

    code = "MISSING_ARTIFACT"

    def __init__(self, path: str, kind: str = "binary"):
        super().__init__(f"Missing DuckDB {kind}: {path}")
        self.path = path
        self.kind = kind


class SourceFileNotFoundError(DuckportError, FileNotFoundError):
    code = "FILE_NOT_FOUND"

    def __init__(self, path: str):
        DuckportError.__init__(self, f"Data file not found: {path}")
        self.path = path


class UnsupportedFileTypeError(DuckportError):
    code = "UNSUPPORTED_FILE_TYPE"

    def __init__(self, kind_or_path: str):
        super().__init__(f"Unsupported file type: {kind_or_path}")
        self.kind = kind_or_path


class InvalidSpecError(DuckportError, ValueError):
    code = "INVALID_SPEC"


class ScriptWriteError(DuckportError):
    code = "SCRIPT_WRITE_ERROR"


class SubprocessSpawnError(DuckportError):
    code = "SPAWN_ERROR"


class ExecutionError(DuckportError):
    """
    The engine process exited non-zero (or timed out).

    `output` holds the combined stdout/stderr verbatim so the engine's SQL
    error is visible to the caller.
    """

    code = "EXECUTION_ERROR"

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode

    def __str__(self) -> str:
        if self.output:
            return f"{self.message}\n{self.output.rstrip()}"
        return self.message


class LibraryLoadError(DuckportError):
    code = "INIT_ERROR"


class DatabaseConnectionError(DuckportError):
    code = "CONNECTION_ERROR"


class QueryError(DuckportError):
    """The engine rejected a query; `message` is the engine's own text."""

    code = "QUERY_ERROR"

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.sql = sql


class InvalidStateError(DuckportError):
    code = "INVALID_STATE"


class ReadBackError(DuckportError):
    code = "READ_BACK_ERROR"


# =============================================================================
# Last-error slot
# =============================================================================


@dataclass(frozen=True)
class ErrorState:
    code: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, str]:
        return {
            "code": self.code,
            "message": self.message,
            "timestamp": self.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        }


class ErrorContext:
    """Single-slot holder for the most recent failure of one backend instance."""

    def __init__(self) -> None:
        self._last: Optional[ErrorState] = None

    @property
    def last_error(self) -> Optional[ErrorState]:
        return self._last

    def record(self, code: str, message: str) -> ErrorState:
        self._last = ErrorState(code=code, message=message)
        return self._last

    def record_exception(self, exc: BaseException) -> ErrorState:
        if isinstance(exc, DuckportError):
            return self.record(exc.code, exc.message or str(exc))
        return self.record("INTERNAL_ERROR", str(exc) or type(exc).__name__)

    def has_error(self) -> bool:
        return self._last is not None and bool(self._last.code or self._last.message)

    def clear(self) -> None:
        self._last = None

    def __repr__(self) -> str:
        return f"ErrorContext(last_error={self._last!r})"


def records_errors(func: F) -> F:
    """
    Method decorator: record any exception in `self.errors`, then re-raise.

    The decorated object must expose an `errors` attribute of type
    ErrorContext.
    """

    @functools.wraps(func)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return func(self, *args, **kwargs)
        except Exception as exc:
            self.errors.record_exception(exc)
            raise

    return wrapper  # type: ignore
