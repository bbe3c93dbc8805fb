import pytest

from stageflow.core.errors import StageflowError, StageNotFoundError, TableInUseError

from tests.conftest import make_stage


def _join(session):
    return session.pipeline.add_stage(make_stage("JOIN", {
        "joinType": "INNER",
        "leftTable": "table_orders_csv",
        "rightTable": "table_customers_csv",
        "leftKey": "cust_id",
        "rightKey": "id",
    }, description="Orders with customers"))


def test_load_csv_registers_table_and_load_stage(session):
    from tests.conftest import ORDERS_CSV
    table, result = session.pipeline.load_csv("orders.csv", ORDERS_CSV)
    assert table.name == "table_orders_csv"
    assert table.row_count == 4
    assert table.source == "upload"
    assert result.stage.type.value == "LOAD"
    assert result.stage.data == {"tableName": "table_orders_csv", "fileName": "orders.csv"}
    assert session.store.table_for_stage(result.stage.id).id == table.id


def test_create_table_from_definition(session):
    table = session.pipeline.create_table({
        "name": "regions",
        "columns": [{"name": "code", "type": "varchar"}, {"name": "weight", "type": "integer"}],
        "rows": [["n", 1], {"code": "s", "weight": 2}],
    })
    assert table.row_count == 2
    assert [c.type for c in table.columns] == ["VARCHAR", "INTEGER"]


def test_create_table_rejects_bad_name(session):
    with pytest.raises(StageflowError):
        session.pipeline.create_table({"name": "bad name", "columns": ["a"]})


def test_update_stage_rematerializes_in_place(loaded_session):
    s = loaded_session
    first = _join(s)
    updated = s.pipeline.update_stage(first.stage.id, {**first.stage.data, "joinType": "LEFT"})
    assert updated.table.id == first.table.id
    assert updated.stage.description == "Orders with customers"
    assert updated.sql.startswith("SELECT l.*, r.* FROM table_orders_csv l LEFT JOIN")


def test_update_unknown_stage(session):
    with pytest.raises(StageNotFoundError):
        session.pipeline.update_stage("nope", {})


def test_delete_stage_keeps_its_table(loaded_session):
    s = loaded_session
    result = _join(s)
    s.pipeline.delete_stage(result.stage.id)
    assert result.table.id in s.store.tables
    assert result.stage.id not in s.store.stage_tables


def test_source_table_of_a_load_stage_cannot_be_deleted(loaded_session):
    s = loaded_session
    orders = s.store.find_table_by_name("table_orders_csv")
    with pytest.raises(TableInUseError):
        s.pipeline.delete_table(orders.id)


def test_compile_preview_does_not_touch_store(loaded_session):
    s = loaded_session
    version = s.store.version
    sql, input_table = s.pipeline.compile_preview(make_stage("SELECT", {"columns": ["amount"]}))
    assert sql == f"SELECT amount FROM {input_table}"
    assert s.store.version == version


def test_export_renumbers_ids(loaded_session):
    s = loaded_session
    _join(s)
    flow = s.pipeline.export_flow()
    assert [item["id"] for item in flow] == ["stage_1", "stage_2", "stage_3"]
    assert [item["type"] for item in flow] == ["LOAD", "LOAD", "JOIN"]
    assert flow[2]["description"] == "Orders with customers"


def test_import_replace_rebuilds_pipeline(loaded_session):
    s = loaded_session
    _join(s)
    flow = s.pipeline.export_flow()

    report = s.pipeline.import_flow(flow, mode="replace")
    assert report.succeeded
    assert [r.table.name for r in report.results] == ["table_customers_csv", "table_orders_csv", "result_stage_2_join"]
    assert len(s.store.stages) == 3
    assert not {"stage_1", "stage_2", "stage_3"} & {st.id for st in s.store.stages}


def test_import_append_places_stages_after_existing(loaded_session):
    s = loaded_session
    report = s.pipeline.import_flow(
        [{"type": "SELECT", "data": {"table": "table_orders_csv", "columns": ["amount"]}}],
        mode="append",
    )
    assert report.succeeded
    assert report.results[0].table.name == "result_stage_2_select"


def test_import_drops_invalid_candidates(loaded_session):
    s = loaded_session
    events = []
    report = s.pipeline.import_flow(
        [
            {"type": "TELEPORT", "data": {}},
            {"type": "FILTER", "data": {"table": "table_orders_csv", "column": "amount", "operator": ">"}},
            {"type": "SELECT", "data": {"table": "table_orders_csv", "columns": ["amount"]}},
        ],
        mode="append",
        event_callback=events.append,
    )
    assert [d.index for d in report.dropped] == [0, 1]
    assert len(report.results) == 1
    assert [e.stage for e in events].count("dropped") == 2
    assert events[-1].stage == "completed"


def test_import_stops_at_first_failure(loaded_session):
    s = loaded_session
    events = []
    report = s.pipeline.import_flow(
        [
            {"type": "SELECT", "data": {"table": "table_orders_csv", "columns": ["amount"]}},
            {"type": "SELECT", "data": {"table": "table_orders_csv", "columns": ["missing"]}},
            {"type": "SELECT", "data": {"table": "table_orders_csv", "columns": ["cust_id"]}},
        ],
        mode="replace",
        event_callback=events.append,
    )
    assert not report.succeeded
    assert len(report.results) == 1
    assert report.error["error"] == "execution"
    assert report.failed_stage_id is not None
    assert report.failed_stage_id not in s.store.stage_tables
    assert [st.type.value for st in s.store.stages] == ["LOAD", "LOAD"]
    assert events[-1].stage == "failed"


def test_failed_run_all_keeps_every_stage(loaded_session):
    s = loaded_session
    first = s.pipeline.add_stage(make_stage("SELECT", {"table": "table_orders_csv", "columns": ["amount", "cust_id"]}))
    s.pipeline.add_stage(make_stage("SORT", {"table": "result_stage_2_select", "orderBy": ["amount"]}))
    s.pipeline.add_stage(make_stage("SELECT", {"columns": ["amount"]}))
    s.pipeline.delete_stage(first.stage.id)
    s.pipeline.delete_table(first.table.id)
    before = [st.id for st in s.store.stages]

    report = s.pipeline.run_all()

    assert not report.succeeded
    assert [st.id for st in s.store.stages] == before
    assert len(s.store.stage_tables) == len(before)


def test_import_reports_forward_references(loaded_session):
    s = loaded_session
    report = s.pipeline.import_flow(
        [
            {"type": "SELECT", "data": {"table": "result_stage_1_select", "columns": ["amount"]}},
            {"type": "SELECT", "data": {"table": "table_orders_csv", "columns": ["amount"]}},
        ],
        mode="replace",
    )
    assert len(report.forward_references) == 1
    assert report.forward_references[0][1] == "result_stage_1_select"


def test_import_rejects_unknown_mode(session):
    with pytest.raises(StageflowError):
        session.pipeline.import_flow([], mode="merge")


def test_graph_of_loaded_pipeline(loaded_session):
    s = loaded_session
    join = _join(s)
    nodes, edges = s.pipeline.graph()
    assert len(nodes[join.stage.id].inputs) == 2
    assert nodes[join.stage.id].level == 1
    assert {e.target for e in edges} == {join.stage.id}
