import pytest

from stageflow.core.errors import EngineError
from stageflow.models import ColumnSchema


def test_create_describe_query_and_count(engine):
    engine.create_or_replace_table("t", "SELECT 1 AS x, 'a' AS y UNION ALL SELECT 2, 'b'")
    assert [c.name for c in engine.describe("t")] == ["x", "y"]
    assert engine.count_rows("t") == 2
    result = engine.query("SELECT * FROM t ORDER BY x")
    assert result["columns"] == ["x", "y"]
    assert result["rows"][0] == {"x": 1, "y": "a"}
    assert engine.table_exists("t")


def test_engine_errors_are_wrapped(engine):
    with pytest.raises(EngineError):
        engine.query("SELECT * FROM does_not_exist")


def test_load_csv(engine, tmp_path):
    path = tmp_path / "o.csv"
    path.write_text("id,amount\n1,10\n2,20\n")
    engine.load_csv("table_o_csv", path)
    assert engine.count_rows("table_o_csv") == 2


def test_create_table_from_rows(engine):
    columns = [ColumnSchema(name="id", type="INTEGER"), ColumnSchema(name="name", type="VARCHAR")]
    engine.create_table_from_rows("people", columns, [[1, "Ada"], [2, "Bob"]])
    assert engine.query("SELECT name FROM people ORDER BY id")["rows"] == [{"name": "Ada"}, {"name": "Bob"}]


def test_failed_row_load_leaves_no_table(engine):
    columns = [ColumnSchema(name="id", type="INTEGER")]
    with pytest.raises(EngineError):
        engine.create_table_from_rows("bad", columns, [["not a number"]])
    assert not engine.table_exists("bad")


def test_drop_table(engine):
    engine.create_or_replace_table("t", "SELECT 1 AS x")
    engine.drop_table("t")
    assert not engine.table_exists("t")


def test_promote_table_replaces_target_and_creates_views(engine):
    engine.create_or_replace_table("t", "SELECT 1 AS x")
    engine.create_or_replace_table("t__staging", "SELECT 2 AS x UNION ALL SELECT 3")
    engine.promote_table("t__staging", "t", {"t_alias": "SELECT * FROM t"})
    assert engine.count_rows("t") == 2
    assert engine.count_rows("t_alias") == 2
    assert not engine.table_exists("t__staging")


def test_failed_promotion_keeps_previous_table(engine):
    engine.create_or_replace_table("t", "SELECT 1 AS x")
    engine.create_or_replace_table("t__staging", "SELECT 2 AS x UNION ALL SELECT 3")
    engine.create_or_replace_table("blocked", "SELECT 0 AS y")
    with pytest.raises(EngineError):
        engine.promote_table("t__staging", "t", {"blocked": "SELECT * FROM t"})
    assert engine.query("SELECT x FROM t")["rows"] == [{"x": 1}]
    assert engine.table_exists("t__staging")
