# tests/test_native_backend.py
"""
Native backend lifecycle, query and import behavior against FakeDuckDB.

FakeDuckDB asserts ordering itself (no database closed before its
connection, no free of an unknown pointer), so most tests only need to
drive the backend and check the fake's ledger afterwards.
"""

import gc

import pytest

from duckport.backends.native import backend as backend_module
from duckport.backends.native.backend import NativeBackend, NativeState
from duckport.config.settings import DuckportConfig
from duckport.errors import (
    DatabaseConnectionError,
    InvalidStateError,
    QueryError,
    SourceFileNotFoundError,
    UnsupportedFileTypeError,
)

from tests.fakes import FakeTable


# =============================================================================
# Connect / disconnect
# =============================================================================


class TestLifecycle:
    def test_starts_unconnected(self, native, fake_lib):
        assert native.state is NativeState.UNCONNECTED
        assert not native.is_connected
        assert fake_lib.calls == []

    def test_state_diagram_in_module_doc(self):
        doc = backend_module.__doc__
        assert "UNCONNECTED | CONNECTED --close()--> CLOSED" in doc
        assert "\\" not in doc

    def test_connect_memory(self, native, fake_lib):
        native.connect()
        assert native.state is NativeState.CONNECTED
        assert native.database_path == ":memory:"
        assert fake_lib.calls[0] == ("open", None)
        assert len(fake_lib.open_databases) == 1
        assert len(fake_lib.open_connections) == 1

    def test_connect_file_passes_encoded_path(self, native, fake_lib):
        native.connect("shop.duckdb")
        assert fake_lib.calls[0] == ("open", b"shop.duckdb")

    def test_connect_returns_self(self, native):
        assert native.connect() is native

    def test_disconnect_releases_connection_then_database(self, connected, fake_lib):
        connected.disconnect()
        names = fake_lib.names()
        assert names.index("disconnect") < names.index("close")
        assert not fake_lib.open_connections
        assert not fake_lib.open_databases
        assert connected.state is NativeState.UNCONNECTED

    def test_disconnect_twice_is_noop(self, connected, fake_lib):
        connected.disconnect()
        before = list(fake_lib.calls)
        connected.disconnect()
        assert fake_lib.calls == before
        assert connected.state is NativeState.UNCONNECTED

    def test_disconnect_without_connect(self, native, fake_lib):
        native.disconnect()
        assert fake_lib.calls == []
        assert native.state is NativeState.UNCONNECTED

    def test_reconnect_releases_previous_pair(self, connected, fake_lib):
        connected.connect("other.duckdb")
        assert len(fake_lib.open_databases) == 1
        assert len(fake_lib.open_connections) == 1
        assert connected.database_path == "other.duckdb"
        assert fake_lib.names().count("close") == 1

    def test_constructor_connects_when_given_database(self, fake_lib):
        nb = NativeBackend("shop.duckdb", library=fake_lib, config=DuckportConfig())
        try:
            assert nb.is_connected
        finally:
            nb.close()
        assert not fake_lib.open_databases


class TestFailedConnect:
    def test_open_failure_leaves_no_handles(self, native, fake_lib):
        fake_lib.fail_open = True
        with pytest.raises(DatabaseConnectionError):
            native.connect("shop.duckdb")
        assert native.state is NativeState.UNCONNECTED
        assert not fake_lib.open_databases
        assert "connect" not in fake_lib.names()

    def test_connect_failure_closes_database(self, native, fake_lib):
        fake_lib.fail_connect = True
        with pytest.raises(DatabaseConnectionError):
            native.connect()
        assert native.state is NativeState.UNCONNECTED
        assert not fake_lib.open_databases
        assert not fake_lib.open_connections
        assert "close" in fake_lib.names()

    def test_failure_is_recorded(self, native, fake_lib):
        fake_lib.fail_open = True
        with pytest.raises(DatabaseConnectionError):
            native.connect("shop.duckdb")
        assert native.errors.last_error.code == "CONNECTION_ERROR"
        assert "shop.duckdb" in native.errors.last_error.message

    def test_usable_after_failed_connect(self, native, fake_lib):
        fake_lib.fail_open = True
        with pytest.raises(DatabaseConnectionError):
            native.connect()
        fake_lib.fail_open = False
        native.connect()
        assert native.is_connected


class TestClose:
    def test_close_is_terminal(self, connected, fake_lib):
        connected.close()
        assert connected.state is NativeState.CLOSED
        assert not fake_lib.open_databases
        with pytest.raises(InvalidStateError):
            connected.connect()

    def test_query_after_close(self, connected, fake_lib):
        connected.close()
        calls = len(fake_lib.calls)
        with pytest.raises(InvalidStateError, match="closed"):
            connected.query("SELECT 1")
        assert len(fake_lib.calls) == calls

    def test_close_twice(self, connected):
        connected.close()
        connected.close()
        assert connected.state is NativeState.CLOSED

    def test_context_manager_closes(self, fake_lib):
        with NativeBackend(":memory:", library=fake_lib, config=DuckportConfig()) as nb:
            assert nb.is_connected
        assert nb.state is NativeState.CLOSED
        assert not fake_lib.open_connections
        assert not fake_lib.open_databases

    def test_context_manager_closes_on_error(self, fake_lib):
        with pytest.raises(RuntimeError):
            with NativeBackend(":memory:", library=fake_lib, config=DuckportConfig()):
                raise RuntimeError("boom")
        assert not fake_lib.open_databases

    def test_garbage_collection_releases_handles(self, fake_lib):
        nb = NativeBackend(":memory:", library=fake_lib, config=DuckportConfig())
        assert fake_lib.open_databases
        del nb
        gc.collect()
        assert not fake_lib.open_connections
        assert not fake_lib.open_databases


# =============================================================================
# Queries
# =============================================================================


class TestQuery:
    def test_unconnected_query_makes_no_foreign_call(self, native, fake_lib):
        with pytest.raises(InvalidStateError):
            native.query("SELECT 1")
        assert fake_lib.calls == []
        assert native.errors.last_error.code == "INVALID_STATE"

    def test_rows_and_columns(self, connected, fake_lib):
        fake_lib.responses["SELECT * FROM product"] = FakeTable(
            columns=["name", "price"],
            rows=[("Product 1", "19.90"), ("Product 2", "5.00")],
        )
        result = connected.query("SELECT * FROM product")
        assert result.columns == ["name", "price"]
        assert result.rows == [
            {"name": "Product 1", "price": "19.90"},
            {"name": "Product 2", "price": "5.00"},
        ]

    def test_result_destroyed_after_success(self, connected, fake_lib):
        fake_lib.default_response = FakeTable(columns=["x"], rows=[("1",)])
        connected.query("SELECT 1 AS x")
        assert fake_lib.live_results == {}
        assert len(fake_lib.destroyed_results) == 1

    def test_engine_error_message_read_before_destroy(self, connected, fake_lib):
        fake_lib.responses["SELEC 1"] = 'Parser Error: syntax error at or near "SELEC"'
        with pytest.raises(QueryError) as exc:
            connected.query("SELEC 1")
        assert "syntax error" in str(exc.value)
        assert exc.value.sql == "SELEC 1"
        names = fake_lib.names()
        assert names.index("result_error") < names.index("destroy_result")
        assert fake_lib.live_results == {}

    def test_engine_error_recorded(self, connected, fake_lib):
        fake_lib.responses["SELECT * FROM missing"] = "Catalog Error: Table missing does not exist"
        with pytest.raises(QueryError):
            connected.query("SELECT * FROM missing")
        assert connected.errors.last_error.code == "QUERY_ERROR"
        assert "Catalog Error" in connected.errors.last_error.message

    def test_result_destroyed_when_extraction_fails(self, connected, fake_lib):
        fake_lib.default_response = FakeTable(
            columns=["a", "b"], rows=[("1", "2"), ("3", "4")]
        )
        fake_lib.fail_varchar_at = (1, 1)
        with pytest.raises(RuntimeError):
            connected.query("SELECT a, b FROM t")
        assert fake_lib.live_results == {}
        assert fake_lib.allocated == {}
        assert connected.errors.last_error.code == "INTERNAL_ERROR"

    def test_success_keeps_last_error(self, connected, fake_lib):
        fake_lib.responses["bad"] = "Parser Error"
        with pytest.raises(QueryError):
            connected.query("bad")
        connected.query("SELECT 1")
        assert connected.errors.last_error.code == "QUERY_ERROR"

    def test_statement_without_rows(self, connected, fake_lib):
        result = connected.query("CREATE TABLE t (a INTEGER)")
        assert result.columns == []
        assert result.rows == []


class TestQuerySingle:
    def test_first_cell(self, connected, fake_lib):
        fake_lib.default_response = FakeTable(
            columns=["price", "name"], rows=[("19.90", "Product 1"), ("5.00", "Product 2")]
        )
        assert connected.query_single("SELECT price, name FROM product") == "19.90"

    def test_no_rows_is_none(self, connected, fake_lib):
        fake_lib.default_response = FakeTable(columns=["price"], rows=[])
        assert connected.query_single("SELECT price FROM product WHERE 1=0") is None

    def test_null_cell_is_none(self, connected, fake_lib):
        fake_lib.default_response = FakeTable(columns=["price"], rows=[(None,)])
        assert connected.query_single("SELECT NULL") is None


# =============================================================================
# Imports
# =============================================================================


@pytest.fixture
def data_files(tmp_path):
    files = {}
    for name in ("products.csv", "events.json", "facts.parquet"):
        p = tmp_path / name
        p.write_text("x\n", encoding="utf-8")
        files[name] = str(p)
    return files


class TestImports:
    def test_import_csv_statement(self, connected, fake_lib, data_files):
        path = data_files["products.csv"]
        connected.import_csv(path, "product")
        assert fake_lib.executed()[-1] == (
            f"CREATE OR REPLACE TABLE product AS SELECT * FROM read_csv_auto('{path}', "
            "header=true, auto_detect=true, all_varchar=false)"
        )

    def test_import_json_statement(self, connected, fake_lib, data_files):
        path = data_files["events.json"]
        connected.import_json(path, "events")
        assert fake_lib.executed()[-1].endswith(
            f"read_json_auto('{path}', auto_detect=true, format='auto')"
        )

    def test_import_parquet_statement(self, connected, fake_lib, data_files):
        path = data_files["facts.parquet"]
        connected.import_parquet(path, "facts")
        assert fake_lib.executed()[-1].endswith(f"read_parquet('{path}')")

    def test_caller_options_override_defaults(self, connected, fake_lib, data_files):
        connected.import_csv(data_files["products.csv"], "product", {"all_varchar": True, "delim": ";"})
        assert "all_varchar=true, delim=';'" in fake_lib.executed()[-1]

    def test_imports_chain(self, connected, fake_lib, data_files):
        out = connected.import_csv(data_files["products.csv"], "a").import_parquet(
            data_files["facts.parquet"], "b"
        )
        assert out is connected
        assert len(fake_lib.executed()) == 2

    def test_configured_defaults_apply(self, fake_lib, data_files):
        config = DuckportConfig(default_options={"csv": {"delim": "|"}})
        with NativeBackend(":memory:", library=fake_lib, config=config) as nb:
            nb.import_csv(data_files["products.csv"], "product")
        assert "all_varchar=false, delim='|'" in fake_lib.executed()[-1]

    def test_import_file_infers_kind_and_table(self, connected, fake_lib, data_files):
        connected.import_file(data_files["facts.parquet"])
        assert fake_lib.executed()[-1].startswith("CREATE OR REPLACE TABLE facts AS")

    def test_import_file_unknown_kind(self, connected, fake_lib, tmp_path):
        f = tmp_path / "data.xyz"
        f.write_text("", encoding="utf-8")
        with pytest.raises(UnsupportedFileTypeError):
            connected.import_file(str(f))
        assert fake_lib.executed() == []

    def test_missing_file(self, connected, fake_lib, tmp_path):
        with pytest.raises(SourceFileNotFoundError):
            connected.import_csv(str(tmp_path / "nope.csv"), "t")
        assert fake_lib.executed() == []
        assert connected.errors.last_error.code == "FILE_NOT_FOUND"

    def test_glob_is_passed_through(self, connected, fake_lib, tmp_path):
        pattern = str(tmp_path / "part-*.parquet")
        connected.import_parquet(pattern, "parts")
        assert pattern in fake_lib.executed()[-1]

    def test_import_requires_connection(self, native, fake_lib, data_files):
        with pytest.raises(InvalidStateError):
            native.import_csv(data_files["products.csv"], "product")
        assert fake_lib.calls == []

    def test_engine_failure_surfaces_as_query_error(self, connected, fake_lib, data_files):
        fake_lib.default_response = "Invalid Input Error: CSV error on line 2"
        with pytest.raises(QueryError, match="CSV error"):
            connected.import_csv(data_files["products.csv"], "product")


class TestIntrospection:
    def test_list_tables(self, connected, fake_lib):
        fake_lib.default_response = FakeTable(columns=["table_name"], rows=[("a",), ("b",)])
        assert connected.list_tables() == ["a", "b"]

    def test_table_info_quotes_name(self, connected, fake_lib):
        connected.table_info("product")
        assert fake_lib.executed()[-1] == "PRAGMA table_info('product')"
