from duckport.sql.builder import (
    ImportSpec,
    Script,
    build,
    build_create_statement,
    detect_file_kind,
)
from duckport.sql.sql_utils import render_options, sanitize_table_name

__all__ = [
    "ImportSpec",
    "Script",
    "build",
    "build_create_statement",
    "detect_file_kind",
    "render_options",
    "sanitize_table_name",
]
