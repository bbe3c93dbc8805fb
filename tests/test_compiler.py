import pytest

from stageflow.core.errors import CompileError
from stageflow.models import StageType
from stageflow.pipeline.sql.compiler import COMPILERS, compile_stage, render_literal

from tests.conftest import make_stage


def test_every_stage_type_has_a_compiler():
    assert set(COMPILERS) == set(StageType)


def test_compile_is_deterministic():
    stage = make_stage("GROUP", {
        "groupBy": ["region"],
        "aggregations": [{"function": "sum", "column": "amount", "alias": "total"}],
    })
    assert compile_stage(stage, "t") == compile_stage(stage, "t")
    assert compile_stage(stage, "t") == "SELECT region, SUM(amount) AS total FROM t GROUP BY region"


def test_join_with_shared_key_uses_using_and_excludes_duplicate():
    stage = make_stage("JOIN", {"joinType": "LEFT", "leftTable": "a", "rightTable": "b", "leftKey": "id", "rightKey": "id"})
    assert compile_stage(stage) == "SELECT l.*, r.* EXCLUDE (id) FROM a l LEFT JOIN b r USING (id)"


def test_join_with_different_keys_uses_on():
    stage = make_stage("JOIN", {"leftTable": "o", "rightTable": "c", "leftKey": "cust_id", "rightKey": "id"})
    assert compile_stage(stage) == "SELECT l.*, r.* FROM o l INNER JOIN c r ON l.cust_id = r.id"


def test_join_rejects_unknown_join_type():
    stage = make_stage("JOIN", {"joinType": "SIDEWAYS", "leftTable": "a", "rightTable": "b", "leftKey": "k", "rightKey": "k"})
    with pytest.raises(CompileError) as exc:
        compile_stage(stage)
    assert exc.value.field == "joinType"
    assert exc.value.stage_id == stage.id


def test_union_joins_all_tables_with_one_keyword_between_each():
    stage = make_stage("UNION", {"unionType": "UNION ALL", "tables": ["a", "b", "c"]})
    sql = compile_stage(stage)
    assert sql == "SELECT * FROM a UNION ALL SELECT * FROM b UNION ALL SELECT * FROM c"
    assert sql.count("UNION ALL") == 2


def test_union_needs_two_tables():
    with pytest.raises(CompileError):
        compile_stage(make_stage("UNION", {"tables": ["a"]}))


def test_filter_single_condition_quotes_strings():
    stage = make_stage("FILTER", {"table": "t", "column": "amount", "operator": ">", "value": "100"})
    assert compile_stage(stage) == "SELECT * FROM t WHERE amount > '100'"


def test_filter_conditions_chain_with_logic():
    stage = make_stage("FILTER", {
        "table": "t", "column": "a", "operator": "=", "value": 1,
        "conditions": [
            {"column": "a", "operator": "=", "value": 1},
            {"column": "b", "operator": "IN", "value": ["x", "y"], "logic": "or"},
        ],
    })
    assert compile_stage(stage) == "SELECT * FROM t WHERE a = 1 OR b IN ('x', 'y')"


@pytest.mark.parametrize("value,expected", [
    (None, "NULL"),
    (True, "true"),
    (0, "0"),
    (2.5, "2.5"),
    ("O'Brien", "'O''Brien'"),
])
def test_render_literal(value, expected):
    assert render_literal(value) == expected


def test_select_and_sort_fall_back_to_default_table():
    assert compile_stage(make_stage("SELECT", {"columns": ["a", "b"]}), "src") == "SELECT a, b FROM src"
    sort = make_stage("SORT", {"orderBy": [{"column": "a", "direction": "desc"}, "b"]})
    assert compile_stage(sort, "src") == "SELECT * FROM src ORDER BY a DESC, b ASC"


def test_sort_rejects_unknown_direction():
    with pytest.raises(CompileError):
        compile_stage(make_stage("SORT", {"orderBy": [{"column": "a", "direction": "UP"}]}), "src")


def test_aggregate_count_without_column():
    stage = make_stage("AGGREGATE", {"aggregations": [{"function": "COUNT", "alias": "n"}]})
    assert compile_stage(stage, "t") == "SELECT COUNT(*) AS n FROM t"


def test_aggregate_without_aggregations_is_a_compile_error():
    with pytest.raises(CompileError) as exc:
        compile_stage(make_stage("AGGREGATE"), "t")
    assert exc.value.field == "aggregations"


def test_custom_passes_sql_verbatim():
    assert compile_stage(make_stage("CUSTOM", {"sql": "SELECT 42 AS x"})) == "SELECT 42 AS x"


def test_group_without_input_table_fails():
    with pytest.raises(CompileError):
        compile_stage(make_stage("GROUP", {"groupBy": ["a"]}))
