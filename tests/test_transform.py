"""End-to-end tests for the transformation pipeline."""

from pathlib import Path

import duckdb
import pytest

from arnab.config import Config, ModelInfo
from arnab.engine.transform import (
    ModelSource,
    build_registry,
    compile_project,
    discover_sources,
    load_macros,
    run_pipeline,
)
from arnab.errors import ConfigError, CyclicDependencyError, SQLParseError, UnknownModelType


def _write_models(root: Path, models: dict[str, str], folder: str = "models") -> None:
    model_dir = root / folder
    model_dir.mkdir(parents=True, exist_ok=True)
    for name, sql in models.items():
        (model_dir / name).write_text(sql)


def _config(tmp_path: Path, **kwargs) -> Config:
    return Config(project_dir=tmp_path, **kwargs)


@pytest.fixture
def conn():
    conn = duckdb.connect()
    conn.execute("CREATE TABLE raw_customers AS SELECT * FROM (VALUES (1), (2), (3)) t(id)")
    conn.execute("CREATE TABLE raw_orders AS SELECT * FROM (VALUES (1, 10), (1, 11), (3, 12), (4, 13)) t(id, order_id)")
    yield conn
    conn.close()


# ===========================================================================
# Discovery
# ===========================================================================


def test_discover_sources(tmp_path):
    _write_models(tmp_path, {"b.sql": "SELECT 2", "a.sql": "SELECT 1"})
    (tmp_path / "models" / "nested").mkdir()
    sources = discover_sources(tmp_path / "models")
    assert [s.id for s in sources] == ["a", "b"]
    assert sources[0].kind == "sql"
    assert sources[0].raw_text == "SELECT 1"


def test_discover_sources_skips_dotfiles(tmp_path):
    _write_models(tmp_path, {"a.sql": "SELECT 1", ".gitkeep": "", ".hidden.sql": "SELECT 2"})
    assert [s.id for s in discover_sources(tmp_path / "models")] == ["a"]


def test_discover_sources_missing_dir(tmp_path):
    assert discover_sources(tmp_path / "nope") == []


def test_load_macros(tmp_path):
    macro_dir = tmp_path / "macros"
    macro_dir.mkdir()
    (macro_dir / "m.sql").write_text("{% macro one() %}1{% endmacro %}")
    macros = load_macros(macro_dir)
    assert macros == {str(macro_dir / "m.sql"): "{% macro one() %}1{% endmacro %}"}
    assert load_macros(None) == {}
    assert load_macros(tmp_path / "missing") == {}


def test_build_registry_rejects_unknown_type(tmp_path):
    sources = [ModelSource(path=tmp_path / "x.py", id="x", raw_text="", kind="py")]
    with pytest.raises(UnknownModelType, match="py"):
        build_registry(sources)


def test_build_registry_materialization(tmp_path):
    sources = [
        ModelSource(path=tmp_path / "a.sql", id="a", raw_text="SELECT 1", kind="sql"),
        ModelSource(path=tmp_path / "b.sql", id="b", raw_text="SELECT 1", kind="sql"),
    ]
    registry = build_registry(sources, {"b": "table"})
    assert registry["a"].materialize == "view"
    assert registry["b"].materialize == "table"
    assert registry["a"].rendered_text == ""


def test_compile_project_unknown_model_type(tmp_path):
    _write_models(tmp_path, {"a.sql": "SELECT 1", "notes.txt": "hello"})
    with pytest.raises(UnknownModelType, match="txt"):
        compile_project(_config(tmp_path))


# ===========================================================================
# Full runs
# ===========================================================================


def test_end_to_end_example(tmp_path, conn):
    _write_models(tmp_path, {
        "customers.sql": "SELECT id FROM raw_customers",
        "orders.sql": "SELECT * FROM customers JOIN raw_orders USING(id)",
    })
    config = _config(tmp_path, models={"orders": ModelInfo(materialize="table")})

    result = run_pipeline(conn, config)

    assert [model_id for model_id, _ in result.outcomes] == ["customers", "orders"]
    customers, orders = (outcome for _, outcome in result.outcomes)
    assert customers.ok and customers.rows_affected is None
    assert orders.ok and orders.rows_affected == 3
    assert result.success_count == 2
    assert result.error_count == 0
    assert result.invalid_refs == set()

    types = dict(conn.execute(
        "SELECT table_name, table_type FROM information_schema.tables "
        "WHERE table_name IN ('customers', 'orders')"
    ).fetchall())
    assert types == {"customers": "VIEW", "orders": "BASE TABLE"}


def test_compile_project_dependencies(tmp_path):
    _write_models(tmp_path, {
        "customers.sql": "SELECT id FROM raw_customers",
        "orders.sql": "-- depends on customers\nSELECT * FROM customers JOIN raw_orders USING(id)",
    })
    registry, invalid = compile_project(_config(tmp_path))
    assert registry["customers"].depends_on == set()
    assert registry["orders"].depends_on == {"customers"}
    assert registry["customers"].dependents == {"orders"}
    assert invalid == set()


def test_failure_isolation(tmp_path, conn):
    _write_models(tmp_path, {
        "a.sql": "SELECT id FROM raw_customers",
        "b.sql": "SELECT no_such_column FROM a",
        "c.sql": "SELECT * FROM b",
        "d.sql": "SELECT count(*) AS n FROM a",
    })
    result = run_pipeline(conn, _config(tmp_path))

    outcomes = dict(result.outcomes)
    assert list(outcomes) == ["a", "b", "c", "d"]
    assert outcomes["a"].ok
    assert not outcomes["b"].ok
    # c was attempted and fails only because b does not exist
    assert not outcomes["c"].ok
    assert "b" in outcomes["c"].error.msg
    assert outcomes["d"].ok
    assert result.success_count == 2
    assert result.error_count == 2


def test_failures_describe_model(tmp_path, conn):
    _write_models(tmp_path, {"bad.sql": "SELECT * FROM raw_customers WHERE missing = 1"})
    result = run_pipeline(conn, _config(tmp_path))
    registry, _ = compile_project(_config(tmp_path))
    (failure,) = result.failures(registry)
    assert failure.model_id == "bad"
    assert failure.source_path.endswith("bad.sql")
    assert "missing" in failure.message
    assert failure.sql.startswith('CREATE OR REPLACE VIEW "bad" AS')


def test_table_rerun_same_row_count(tmp_path, conn):
    _write_models(tmp_path, {"snapshot.sql": "SELECT * FROM raw_orders"})
    config = _config(tmp_path, models={"snapshot": ModelInfo(materialize="table")})
    first = run_pipeline(conn, config)
    second = run_pipeline(conn, config)
    assert first.outcomes[0][1].rows_affected == 4
    assert second.outcomes[0][1].rows_affected == 4


def test_two_record_statements_fail_model_only(tmp_path, conn):
    _write_models(tmp_path, {"double.sql": "SELECT 1; SELECT 2;", "fine.sql": "SELECT 1 AS x"})
    result = run_pipeline(conn, _config(tmp_path))
    outcomes = dict(result.outcomes)
    assert not outcomes["double"].ok
    assert outcomes["fine"].ok
    exists = conn.execute(
        "SELECT count(*) FROM information_schema.tables WHERE table_name = 'double'"
    ).fetchone()[0]
    assert exists == 0


def test_unknown_materialization_fails_model(tmp_path, conn):
    _write_models(tmp_path, {"m.sql": "SELECT 1"})
    config = _config(tmp_path, models={"m": ModelInfo(materialize="ephemeral")})
    result = run_pipeline(conn, config)
    assert result.error_count == 1
    assert "ephemeral" in str(result.outcomes[0][1].error)


def test_macros_visible_to_all_models(tmp_path, conn):
    _write_models(tmp_path, {
        "money.sql": "{% macro to_dollars(col) %}({{ col }} / 100.0){% endmacro %}",
    }, folder="macros")
    _write_models(tmp_path, {
        "orders_usd.sql": "SELECT order_id, {{ to_dollars('order_id') }} AS usd FROM raw_orders",
        "single.sql": "SELECT {{ to_dollars('250') }} AS usd",
    })
    config = _config(tmp_path, macro_path="macros", models={"orders_usd": ModelInfo(materialize="table")})
    result = run_pipeline(conn, config)
    assert result.error_count == 0
    assert conn.execute("SELECT CAST(usd AS DOUBLE) FROM single").fetchone()[0] == 2.5
    assert conn.execute("SELECT CAST(max(usd) AS DOUBLE) FROM orders_usd").fetchone()[0] == pytest.approx(0.13)


def test_macro_file_header_comment(tmp_path, conn):
    _write_models(tmp_path, {
        "helpers.sql": "-- shared helpers\n{% macro one() %}1{% endmacro %}",
        ".gitkeep": "",
    }, folder="macros")
    _write_models(tmp_path, {"a.sql": "SELECT {{ one() }} AS x"})
    result = run_pipeline(conn, _config(tmp_path, macro_path="macros"))
    assert result.error_count == 0
    assert conn.execute("SELECT x FROM a").fetchone()[0] == 1


def test_missing_ref_is_warning(tmp_path, conn):
    _write_models(tmp_path, {"m.sql": "SELECT * FROM {{ ref('ghost') }}"})
    result = run_pipeline(conn, _config(tmp_path))
    assert result.invalid_refs == {"ghost"}
    assert result.invalid_ref_count == 1
    # the model itself still runs and fails on the engine
    assert result.error_count == 1


def test_cycle_aborts_before_execution(tmp_path, conn):
    _write_models(tmp_path, {
        "a.sql": "SELECT * FROM b",
        "b.sql": "SELECT * FROM a",
        "c.sql": "SELECT 1 AS x",
    })
    with pytest.raises(CyclicDependencyError):
        run_pipeline(conn, _config(tmp_path))
    exists = conn.execute(
        "SELECT count(*) FROM information_schema.tables WHERE table_name = 'c'"
    ).fetchone()[0]
    assert exists == 0


def test_parse_error_aborts_run(tmp_path, conn):
    _write_models(tmp_path, {"a.sql": "SELECT 1 AS x", "z.sql": "SELECT * FROM t WHERE (a = 1"})
    with pytest.raises(SQLParseError):
        run_pipeline(conn, _config(tmp_path))


def test_targets_build_upstream(tmp_path, conn):
    _write_models(tmp_path, {
        "a.sql": "SELECT 1 AS x",
        "b.sql": "SELECT * FROM a",
        "c.sql": "SELECT * FROM b",
    })
    result = run_pipeline(conn, _config(tmp_path), targets=["b"])
    assert [model_id for model_id, _ in result.outcomes] == ["a", "b"]


def test_unknown_target(tmp_path, conn):
    _write_models(tmp_path, {"a.sql": "SELECT 1 AS x"})
    with pytest.raises(ConfigError):
        run_pipeline(conn, _config(tmp_path), targets=["zzz"])


def test_duckdb_settings_applied(tmp_path, conn):
    _write_models(tmp_path, {"a.sql": "SELECT current_setting('threads') AS threads"})
    config = _config(tmp_path, duckdb_settings={"threads": "3"}, models={"a": ModelInfo(materialize="table")})
    run_pipeline(conn, config)
    assert conn.execute("SELECT threads FROM a").fetchone()[0] == 3


def test_invalid_duckdb_setting(tmp_path, conn):
    _write_models(tmp_path, {"a.sql": "SELECT 1 AS x"})
    with pytest.raises(ConfigError):
        run_pipeline(conn, _config(tmp_path, duckdb_settings={"not a setting": "1"}))
    with pytest.raises(ConfigError):
        run_pipeline(conn, _config(tmp_path, duckdb_settings={"no_such_setting_xyz": "1"}))
