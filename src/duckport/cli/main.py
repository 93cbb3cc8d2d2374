from __future__ import annotations

"""
duckport CLI — SQL over CSV/JSON/Parquet files through DuckDB.

Thin layer: parse args → call a backend → print via reporters.
"""

import json
from typing import Any, Dict, List, Literal, Optional, Tuple

import typer
from rich.markup import escape

from duckport.backends.native.backend import NativeBackend
from duckport.backends.process import ProcessBackend
from duckport.cli.constants import EXIT_CONFIG_ERROR, EXIT_RUNTIME_ERROR, EXIT_SUCCESS
from duckport.config.settings import load_config
from duckport.errors import (
    DuckportError,
    InvalidSpecError,
    MissingBinaryError,
    SourceFileNotFoundError,
    UnsupportedFileTypeError,
    UnsupportedPlatformError,
)
from duckport.logging import set_debug
from duckport.platform.resolver import PlatformResolver
from duckport.readers.sqlite_reader import SqliteReader
from duckport.reporters.rich_reporter import (
    render_platform,
    render_result,
    report_failure,
    report_success,
)
from duckport.results import QueryResult
from duckport.sql.builder import default_database_name
from duckport.sql.sql_utils import esc_ident, sanitize_table_name
from duckport.version import VERSION

app = typer.Typer(help="duckport — SQL over large data files via DuckDB")

# Input/config problems; everything else is a runtime error.
_CONFIG_ERRORS = (
    InvalidSpecError,
    MissingBinaryError,
    SourceFileNotFoundError,
    UnsupportedFileTypeError,
    UnsupportedPlatformError,
)


@app.callback()
def _version(
    version: Optional[bool] = typer.Option(
        None, "--version", help="Show the duckport version and exit.", is_eager=True
    )
) -> None:
    if version:
        typer.echo(f"duckport {VERSION}")
        raise typer.Exit(code=0)


def parse_option(raw: str) -> Tuple[str, Any]:
    """`header=true` -> ("header", True); ints/floats stay numeric."""
    if "=" not in raw:
        raise InvalidSpecError(f"Option must look like key=value: {raw!r}")
    key, value = raw.split("=", 1)
    key = key.strip()
    if not key:
        raise InvalidSpecError(f"Option has an empty name: {raw!r}")
    lowered = value.strip().lower()
    if lowered in ("true", "false"):
        return key, lowered == "true"
    for cast in (int, float):
        try:
            return key, cast(value)
        except ValueError:
            continue
    return key, value


def _parse_options(raw: Optional[List[str]]) -> Dict[str, Any]:
    return dict(parse_option(item) for item in (raw or []))


def _fail(e: Exception, verbose: bool) -> None:
    code = EXIT_CONFIG_ERROR if isinstance(e, _CONFIG_ERRORS) else EXIT_RUNTIME_ERROR
    if isinstance(e, DuckportError):
        label = e.code
    else:
        label = "RUNTIME_ERROR"
    if verbose or isinstance(e, DuckportError):
        report_failure(escape(f"[{label}] {e}"))
    else:
        report_failure("An unexpected error occurred. Use --verbose for details.")
    raise typer.Exit(code=code)


def _emit(result: QueryResult, output_format: str, single: bool) -> None:
    if single:
        value = result.scalar()
        if output_format == "json":
            typer.echo(json.dumps(value, default=str))
        else:
            typer.echo("NULL" if value is None else str(value))
        return
    if output_format == "json":
        typer.echo(result.to_json(indent=2))
    else:
        render_result(result)


@app.command("import")
def import_cmd(
    file: str = typer.Argument(..., help="CSV/JSON/Parquet file (optionally .gz)."),
    db: Optional[str] = typer.Option(
        None, "--db", help="Target database name (default: file stem)."
    ),
    table: str = typer.Option("temp", "--table", "-t", help="Target table name."),
    kind: Optional[Literal["csv", "json", "parquet"]] = typer.Option(
        None, "--kind", "-k", help="Force the file kind instead of using the extension."
    ),
    option: Optional[List[str]] = typer.Option(
        None, "--option", "-O", help="Reader option key=value (repeatable)."
    ),
    override: bool = typer.Option(
        False, "--override", help="Delete an existing database first (process backend)."
    ),
    backend: Literal["process", "native"] = typer.Option(
        "process", "--backend", "-b", help="Execution backend."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Import a data file into a table."""
    if verbose:
        set_debug(True)
    try:
        options = _parse_options(option)
        config = load_config()
        if backend == "native":
            database = db or default_database_name(file)
            path = database if database.endswith(".duckdb") else f"{database}.duckdb"
            with NativeBackend(path, config=config) as nb:
                nb.import_file(file, table, kind=kind, options=options)
                imported = sanitize_table_name(table)
                count = nb.query_single(f"SELECT COUNT(*) FROM {esc_ident(imported)}")
            report_success(f"Imported {file} -> {path}:{imported} ({count} rows)")
        else:
            pb = ProcessBackend(config)
            pb.import_file(
                file, table, kind=kind, options=options, database=db, override=override
            )
            report_success(f"Imported {file} -> {pb.database_path}:{pb.table}")
    except Exception as e:
        _fail(e, verbose)
    raise typer.Exit(code=EXIT_SUCCESS)


@app.command("query")
def query_cmd(
    database: str = typer.Argument(..., help="Database file (.db SQLite or DuckDB file)."),
    sql: str = typer.Argument(..., help="SQL to run."),
    backend: Literal["process", "native"] = typer.Option(
        "process",
        "--backend",
        "-b",
        help="process: read an imported SQLite file; native: query via libduckdb.",
    ),
    output_format: Literal["rich", "json"] = typer.Option(
        "rich", "--output-format", "-o", help="Output format."
    ),
    single: bool = typer.Option(False, "--single", "-s", help="Print only row 0, column 0."),
    typed: bool = typer.Option(False, "--typed", help="Typed values (native backend)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Run SQL against a database produced by `import`."""
    if verbose:
        set_debug(True)
    try:
        if backend == "native":
            with NativeBackend(database, config=load_config(), typed=typed) as nb:
                result = nb.query(sql)
        else:
            result = SqliteReader(database).query(sql)
        _emit(result, output_format, single)
    except Exception as e:
        _fail(e, verbose)
    raise typer.Exit(code=EXIT_SUCCESS)


@app.command("platform")
def platform_cmd(
    output_format: Literal["rich", "json"] = typer.Option(
        "rich", "--output-format", "-o", help="Output format."
    ),
) -> None:
    """Show the detected platform and where DuckDB artifacts are expected."""
    try:
        info = PlatformResolver.from_config(load_config()).describe()
    except Exception as e:
        _fail(e, verbose=False)
    if output_format == "json":
        typer.echo(json.dumps(info, indent=2))
    else:
        render_platform(info)
    raise typer.Exit(code=EXIT_SUCCESS)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
