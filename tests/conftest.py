import os
import shutil
import stat
import sys
from pathlib import Path

import polars as pl
import pytest

from duckport.backends.native.backend import NativeBackend
from duckport.config.settings import DuckportConfig
from duckport.platform.resolver import PlatformResolver

from tests.fakes import FAKE_CLI, FakeDuckDB

PRODUCTS = pl.DataFrame({
    "name": ["Product 1", "Product 2", "Product 3"],
    "price": ["19.90", "5.00", "1234.50"],
    "ean": ["123", "456", "789"],
})

posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="fake CLI is a POSIX shell script")


# ---------- Native (fake library) ----------

@pytest.fixture
def fake_lib() -> FakeDuckDB:
    return FakeDuckDB()


@pytest.fixture
def native(fake_lib) -> NativeBackend:
    nb = NativeBackend(library=fake_lib, config=DuckportConfig())
    yield nb
    nb.close()


@pytest.fixture
def connected(native) -> NativeBackend:
    return native.connect(":memory:")


# ---------- Process (fake CLI) ----------

@pytest.fixture
def bin_dir(tmp_path) -> Path:
    """Artifact layout with an executable fake CLI under lin/."""
    root = tmp_path / "bin"
    (root / "lin").mkdir(parents=True)
    cli = root / "lin" / "duckdb"
    cli.write_text(FAKE_CLI, encoding="utf-8")
    cli.chmod(cli.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return root


@pytest.fixture
def script_dir(tmp_path) -> Path:
    d = tmp_path / "scripts"
    d.mkdir()
    return d


@pytest.fixture
def workdir(tmp_path) -> Path:
    d = tmp_path / "work"
    d.mkdir()
    return d


@pytest.fixture
def process_config(bin_dir, script_dir) -> DuckportConfig:
    return DuckportConfig(bin_dir=str(bin_dir), temp_dir=str(script_dir))


@pytest.fixture
def linux_resolver(bin_dir) -> PlatformResolver:
    return PlatformResolver(str(bin_dir), system="Linux")


# ---------- Data files ----------

@pytest.fixture
def products_csv(workdir) -> Path:
    out = workdir / "products.csv"
    PRODUCTS.write_csv(str(out), include_header=True)
    return out


# ---------- Real engine artifacts (optional) ----------

def _real_binary():
    explicit = os.getenv("DUCKPORT_BINARY")
    if explicit and Path(explicit).is_file():
        return explicit
    return shutil.which("duckdb")


def _real_library():
    explicit = os.getenv("DUCKPORT_LIBRARY")
    if explicit and Path(explicit).is_file():
        return explicit
    return None


@pytest.fixture
def real_binary() -> str:
    path = _real_binary()
    if not path:
        pytest.skip("duckdb CLI not available (set DUCKPORT_BINARY)")
    return path


@pytest.fixture
def real_library() -> str:
    path = _real_library()
    if not path:
        pytest.skip("libduckdb not available (set DUCKPORT_LIBRARY)")
    return path
