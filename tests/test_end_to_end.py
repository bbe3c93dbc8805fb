from tests.conftest import make_stage


def test_customers_orders_join_then_filter(loaded_session):
    s = loaded_session

    join = s.pipeline.add_stage(make_stage("JOIN", {
        "joinType": "INNER",
        "leftTable": "table_orders_csv",
        "rightTable": "table_customers_csv",
        "leftKey": "cust_id",
        "rightKey": "id",
    }))
    assert join.table.name == "result_stage_2_join"
    assert join.table.row_count == 4
    assert join.table.column_names == ["order_id", "cust_id", "amount", "id", "name", "region"]

    # String value against a numeric column: the engine casts the literal
    big = s.pipeline.add_stage(make_stage("FILTER", {
        "table": "result_stage_2_join",
        "column": "amount",
        "operator": ">",
        "value": "100",
    }))
    assert big.table.name == "result_stage_3_filter"
    assert big.sql == "SELECT * FROM result_stage_2_join WHERE amount > '100'"
    assert sorted(r["amount"] for r in big.table.rows) == [150, 200]

    # The synthetic join name reads the same data
    assert s.engine.count_rows("joined_table_orders_csv_table_customers_csv") == 4

    nodes, _ = s.pipeline.graph()
    assert nodes[big.stage.id].inputs == [join.stage.id]
    assert nodes[big.stage.id].level == 2

    # Re-running the whole flow reproduces the same tables
    report = s.pipeline.run_all()
    assert report.succeeded
    assert [r.table.name for r in report.results][-2:] == ["result_stage_2_join", "result_stage_3_filter"]
    assert report.results[-1].table.row_count == 2


def test_shared_key_join_then_filter_and_re_execution(session):
    s = session
    s.pipeline.load_csv("customers.csv", b"customer_id,name\n1,Ada\n2,Bob\n3,Cy\n")
    s.pipeline.load_csv("orders.csv", b"order_id,customer_id,amount\n10,1,50\n11,1,150\n12,2,200\n13,3,101\n")

    join_stage = make_stage("JOIN", {
        "joinType": "INNER",
        "leftTable": "table_customers_csv",
        "rightTable": "table_orders_csv",
        "leftKey": "customer_id",
        "rightKey": "customer_id",
    })
    join = s.pipeline.add_stage(join_stage)
    assert join.table.column_names == ["customer_id", "name", "order_id", "amount"]

    again = s.pipeline.materializer.execute(join.stage)
    assert again.table.id == join.table.id
    assert again.table.name == "result_stage_2_join"
    assert again.mapping_updated is True

    big = s.pipeline.add_stage(make_stage("FILTER", {
        "table": join.table.name,
        "column": "amount",
        "operator": ">",
        "value": "100",
    }))
    assert big.table.row_count <= join.table.row_count
    assert big.table.row_count == 3
    assert all(r["amount"] > 100 for r in big.table.rows)
