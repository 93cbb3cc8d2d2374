# src/duckport/backends/process.py
"""
Process backend: run the DuckDB CLI against a generated script.

Each call to `execute` owns one temporary script file for exactly the
lifetime of the engine process. The file is removed on every exit path:
success, non-zero exit, timeout, or failure to spawn.

Invocation (fixed):

    <duckdb binary> .shell ".read <script>"

`.shell` is the scratch DuckDB database the CLI opens in the working
directory; the real output goes to the SQLite file the script attaches.
"""

from __future__ import annotations

import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, List, Mapping, Optional

from duckport.backends.base import Backend
from duckport.backends.registry import register_backend
from duckport.config.settings import DuckportConfig, load_config
from duckport.errors import (
    ErrorContext,
    ExecutionError,
    InvalidStateError,
    ScriptWriteError,
    SourceFileNotFoundError,
    SubprocessSpawnError,
    records_errors,
)
from duckport.logging import get_logger, log_exception, set_debug
from duckport.platform.resolver import PlatformResolver
from duckport.readers.sqlite_reader import SqliteReader
from duckport.results import ExitOutcome, QueryResult
from duckport.sql.builder import ImportSpec, Script, build, detect_file_kind, normalize_kind
from duckport.sql.sql_utils import merge_options

_logger = get_logger(__name__)

SCRATCH_DB = ".shell"
# Files the CLI and SQLite leave next to a database.
SCRATCH_FILES = (".shell", ".shell.wal")
SIDECAR_SUFFIXES = ("", "-wal", "-shm", "-journal")


def _read_command(script_path: str) -> str:
    # Single quotes: the CLI does no backslash processing inside them.
    if any(ch.isspace() for ch in script_path):
        return f".read '{script_path}'"
    return f".read {script_path}"


@register_backend("process")
class ProcessBackend(Backend):
    """
    Subprocess-based execution.

    Returns no rows itself. After `import_file`, `query` reads the attached
    SQLite file back through SqliteReader.
    """

    def __init__(
        self,
        config: Optional[DuckportConfig] = None,
        *,
        resolver: Optional[PlatformResolver] = None,
        workdir: Optional[str] = None,
    ):
        self.config = config or load_config()
        if self.config.debug:
            set_debug(True)
        self.resolver = resolver or PlatformResolver.from_config(self.config)
        self.workdir = Path(workdir) if workdir else Path.cwd()
        self.errors = ErrorContext()
        self.last_outcome: Optional[ExitOutcome] = None
        self.database_path: Optional[Path] = None
        self.table: Optional[str] = None

    # ---------- Script execution ----------

    @records_errors
    def execute(self, script: Script) -> ExitOutcome:
        """
        Run `script` through the CLI and return the captured outcome.

        Raises:
            UnsupportedPlatformError / MissingBinaryError: binary unresolved.
            ScriptWriteError: the temp script could not be written.
            SubprocessSpawnError: the binary could not be started.
            ExecutionError: non-zero exit or timeout; carries the output.
        """
        binary = self.resolver.resolve_binary()
        script_path = self._write_script(script)
        try:
            outcome = self._run(binary, script_path)
        finally:
            self._remove_script(script_path)

        self.last_outcome = outcome
        if not outcome.ok:
            _logger.warning("DuckDB exited with code %d", outcome.returncode)
            raise ExecutionError(
                f"DuckDB exited with code {outcome.returncode}",
                output=outcome.output,
                returncode=outcome.returncode,
            )
        return outcome

    def _write_script(self, script: Script) -> str:
        try:
            fd, path = tempfile.mkstemp(
                prefix="duckport-", suffix=".sql", dir=self.config.temp_dir
            )
        except OSError as e:
            raise ScriptWriteError(f"Cannot create script file: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(script.text)
        except OSError as e:
            self._remove_script(path)
            raise ScriptWriteError(f"Cannot write script file {path}: {e}") from e

        _logger.debug("Wrote script %s (%d statements)", path, len(script.statements))
        return path

    def _run(self, binary: Path, script_path: str) -> ExitOutcome:
        args: List[str] = [str(binary), SCRATCH_DB, _read_command(script_path)]
        timeout = self.config.timeout_s

        t0 = time.perf_counter()
        try:
            proc = subprocess.run(
                args,
                cwd=str(self.workdir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or b""
            raise ExecutionError(
                f"DuckDB did not finish within {timeout}s",
                output=output.decode("utf-8", errors="replace"),
            ) from e
        except OSError as e:
            raise SubprocessSpawnError(f"Cannot start {binary}: {e}") from e
        duration_ms = int((time.perf_counter() - t0) * 1000)

        output = (proc.stdout or b"").decode("utf-8", errors="replace")
        _logger.debug(
            "DuckDB exited with %d in %d ms", proc.returncode, duration_ms
        )
        return ExitOutcome(
            returncode=proc.returncode,
            output=output,
            script_path=script_path,
            duration_ms=duration_ms,
        )

    @staticmethod
    def _remove_script(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log_exception(_logger, f"Could not remove script {path}", e)

    # ---------- Imports ----------

    @records_errors
    def import_file(
        self,
        path: str,
        table: Optional[str] = None,
        *,
        kind: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
        database: Optional[str] = None,
        override: bool = False,
    ) -> "ProcessBackend":
        """
        Materialize `path` into `<database>.db` / `table` via the CLI.

        Args:
            path: Source CSV/JSON/Parquet file (optionally .gz).
            table: Target table. Defaults to "temp".
            kind: Force csv | json | parquet instead of extension inference.
            options: Reader options, layered over built-in and configured
                defaults.
            database: Target database name (no `.db`). Defaults to the
                source file stem. Relative names resolve against workdir.
            override: Delete the existing database and sidecars first.
        """
        resolved_kind = normalize_kind(kind) if kind else detect_file_kind(path)
        spec = ImportSpec.create(
            path,
            database_name=database,
            table_name=table or "temp",
            file_kind=resolved_kind,
            options=merge_options(self.config.options_for(resolved_kind), options),
        )
        script = build(spec)

        # The CLI resolves relative paths against workdir, so check there too.
        if not (self.workdir / path).is_file():
            raise SourceFileNotFoundError(str(path))

        if override:
            self.reset_database(spec.database_name)

        self.execute(script)
        self.database_path = self.workdir / spec.database_file
        self.table = spec.table_name
        _logger.debug(
            "Imported %s -> %s.%s", path, self.database_path, self.table
        )
        return self

    def reset_database(self, database: str) -> None:
        """Remove `<database>.db`, its SQLite sidecars and the CLI scratch files."""
        target = self.workdir / f"{database}.db"
        paths = [Path(f"{target}{suffix}") for suffix in SIDECAR_SUFFIXES]
        paths += [self.workdir / name for name in SCRATCH_FILES]
        for p in paths:
            try:
                p.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                log_exception(_logger, f"Could not remove {p}", e)

    # ---------- Read-back ----------

    def reader(self) -> SqliteReader:
        if self.database_path is None:
            raise InvalidStateError("No database imported yet; call import_file() first")
        return SqliteReader(str(self.database_path))

    @records_errors
    def query(self, sql: str) -> QueryResult:
        return self.reader().query(sql)

    @records_errors
    def query_single(self, sql: str) -> Any:
        return self.reader().single(sql)
