# src/duckport/platform/resolver.py
"""
Map the running OS family to the DuckDB artifacts shipped for it.

Layout under `bin_dir`:

  win/duckdb.exe     CLI binary       (process backend)
  win/duckdb.dll     shared library   (native backend)
  lin/duckdb
  lin/libduckdb.so

Only Windows and Linux are supported. The platform check always runs before
the existence check so "unsupported platform" and "artifact missing" stay
distinct failures.
"""

from __future__ import annotations

import platform
from pathlib import Path
from typing import Dict, Optional

from duckport.errors import MissingBinaryError, UnsupportedPlatformError
from duckport.logging import get_logger

_logger = get_logger(__name__)

# family -> (subdir, binary name, library name)
_LAYOUT: Dict[str, tuple] = {
    "windows": ("win", "duckdb.exe", "duckdb.dll"),
    "linux": ("lin", "duckdb", "libduckdb.so"),
}


class PlatformResolver:
    def __init__(
        self,
        bin_dir: Optional[str] = None,
        *,
        system: Optional[str] = None,
        binary: Optional[str] = None,
        library: Optional[str] = None,
    ):
        """
        Args:
            bin_dir: Root of the artifact layout. Defaults to the package's
                own `bin/` directory.
            system: OS family override (as `platform.system()` reports it).
            binary: Explicit CLI binary path; skips the layout lookup.
            library: Explicit shared library path; skips the layout lookup.
        """
        if bin_dir is None:
            from duckport.config.settings import _package_bin_dir

            bin_dir = _package_bin_dir()
        self.bin_dir = Path(bin_dir)
        self._system = system
        self._binary = binary
        self._library = library

    @classmethod
    def from_config(cls, config) -> "PlatformResolver":
        return cls(config.bin_dir, binary=config.binary, library=config.library)

    # ---------- Lookup ----------

    def family(self) -> str:
        system = self._system if self._system is not None else platform.system()
        family = (system or "").strip().lower()
        if family not in _LAYOUT:
            raise UnsupportedPlatformError(system or "unknown")
        return family

    def binary_path(self) -> Path:
        family = self.family()
        if self._binary:
            return Path(self._binary)
        subdir, binary, _ = _LAYOUT[family]
        return self.bin_dir / subdir / binary

    def library_path(self) -> Path:
        family = self.family()
        if self._library:
            return Path(self._library)
        subdir, _, library = _LAYOUT[family]
        return self.bin_dir / subdir / library

    # ---------- Verified lookup ----------

    def resolve_binary(self) -> Path:
        """Return the absolute CLI binary path, verified to exist."""
        return self._verify(self.binary_path(), "binary")

    def resolve_library(self) -> Path:
        """Return the absolute shared library path, verified to exist."""
        return self._verify(self.library_path(), "library")

    def describe(self) -> Dict[str, object]:
        """Best-effort summary for diagnostics (never raises for missing files)."""
        family = self.family()
        binary = self.binary_path()
        library = self.library_path()
        return {
            "family": family,
            "binary": str(binary),
            "binary_exists": binary.is_file(),
            "library": str(library),
            "library_exists": library.is_file(),
        }

    @staticmethod
    def _verify(path: Path, kind: str) -> Path:
        resolved = path.expanduser().resolve()
        if not resolved.is_file():
            raise MissingBinaryError(str(resolved), kind)
        _logger.debug("Resolved DuckDB %s: %s", kind, resolved)
        return resolved
