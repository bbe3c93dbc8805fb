"""
SQL Compiler
Turns a stage into a single DuckDB SELECT statement

Pure: the same stage and default input table always give the same SQL.
Identifiers are emitted as written in the payload (qualified names such
as c.region are allowed); only literal values are quoted.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PayloadError

from stageflow.core.errors import CompileError
from stageflow.models.stage import (
    Aggregation,
    AggregateData,
    CustomData,
    FilterCondition,
    FilterData,
    GroupData,
    JoinData,
    LoadData,
    OrderSpec,
    SelectData,
    SortData,
    Stage,
    StageType,
    UnionData,
)

logger = logging.getLogger(__name__)

JOIN_KEYWORDS = {
    "INNER": "INNER JOIN",
    "LEFT": "LEFT JOIN",
    "RIGHT": "RIGHT JOIN",
    "FULL OUTER": "FULL OUTER JOIN",
}
UNION_KEYWORDS = ("UNION", "UNION ALL")
SORT_DIRECTIONS = ("ASC", "DESC")
FILTER_LOGIC = ("AND", "OR")

LEFT_ALIAS = "l"
RIGHT_ALIAS = "r"


def render_literal(value: Any) -> str:
    """
    Render a filter value as a SQL literal

    Numbers and booleans are emitted bare, sequences become a
    parenthesized list (for IN / NOT IN), everything else is a quoted
    string with embedded quotes doubled.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "(" + ", ".join(render_literal(v) for v in value) + ")"
    text = value if isinstance(value, str) else str(value)
    return "'" + text.replace("'", "''") + "'"


def _require(value: Any, field: str, stage_type: StageType) -> Any:
    if value is None or value == "" or value == []:
        raise CompileError(f"{stage_type.value} stage requires {field}", field=field)
    return value


def _source_table(table: Optional[str], default_table: Optional[str], stage_type: StageType) -> str:
    source = table or default_table
    if not source:
        raise CompileError(f"{stage_type.value} stage has no input table", field="table")
    return source


def _render_aggregation(agg: Aggregation, stage_type: StageType) -> str:
    func = _require(agg.function, "aggregations.function", stage_type).strip().upper()
    column = agg.column
    if not column:
        if func != "COUNT":
            raise CompileError(
                f"{stage_type.value} aggregation {func} requires a column",
                field="aggregations.column",
            )
        column = "*"
    alias = f" AS {agg.alias}" if agg.alias else ""
    return f"{func}({column}){alias}"


def _compile_load(data: LoadData, default_table: Optional[str]) -> str:
    table = _source_table(data.tableName, default_table, StageType.LOAD)
    return f"SELECT * FROM {table}"


def _compile_join(data: JoinData, default_table: Optional[str]) -> str:
    left = _require(data.leftTable, "leftTable", StageType.JOIN)
    right = _require(data.rightTable, "rightTable", StageType.JOIN)
    left_key = _require(data.leftKey, "leftKey", StageType.JOIN)
    right_key = _require(data.rightKey, "rightKey", StageType.JOIN)

    join_type = (data.joinType or "INNER").strip().upper()
    keyword = JOIN_KEYWORDS.get(join_type)
    if keyword is None:
        raise CompileError(f"Unsupported joinType '{data.joinType}'", field="joinType")

    l, r = LEFT_ALIAS, RIGHT_ALIAS
    if left_key == right_key:
        # Same key name: USING + EXCLUDE keeps a single key column
        return (
            f"SELECT {l}.*, {r}.* EXCLUDE ({right_key}) "
            f"FROM {left} {l} {keyword} {right} {r} USING ({left_key})"
        )
    # Different key names: both key columns survive in the output
    return (
        f"SELECT {l}.*, {r}.* "
        f"FROM {left} {l} {keyword} {right} {r} ON {l}.{left_key} = {r}.{right_key}"
    )


def _compile_union(data: UnionData, default_table: Optional[str]) -> str:
    tables = data.tables or []
    if len(tables) < 2:
        raise CompileError("UNION stage requires at least 2 tables", field="tables")

    union_type = (data.unionType or "UNION").strip().upper()
    if union_type not in UNION_KEYWORDS:
        raise CompileError(f"Unsupported unionType '{data.unionType}'", field="unionType")

    return f" {union_type} ".join(f"SELECT * FROM {t}" for t in tables)


def _render_condition(cond: FilterCondition, index: int) -> str:
    column = _require(cond.column, "conditions.column", StageType.FILTER)
    operator = _require(cond.operator, "conditions.operator", StageType.FILTER)
    prefix = ""
    if index > 0:
        logic = (cond.logic or "AND").strip().upper()
        if logic not in FILTER_LOGIC:
            raise CompileError(f"Unsupported filter logic '{cond.logic}'", field="conditions.logic")
        prefix = f" {logic} "
    return f"{prefix}{column} {operator} {render_literal(cond.value)}"


def _compile_filter(data: FilterData, default_table: Optional[str]) -> str:
    table = _require(data.table, "table", StageType.FILTER)

    if data.conditions:
        where = "".join(_render_condition(c, i) for i, c in enumerate(data.conditions))
    elif data.column and data.operator and data.value is not None:
        where = f"{data.column} {data.operator} {render_literal(data.value)}"
    else:
        raise CompileError(
            "FILTER stage requires column, operator, and value, or conditions array",
            field="conditions",
        )
    return f"SELECT * FROM {table} WHERE {where}"


def _compile_group(data: GroupData, default_table: Optional[str]) -> str:
    group_by = ", ".join(_require(data.groupBy, "groupBy", StageType.GROUP))
    select_clause = group_by
    if data.aggregations:
        aggs = ", ".join(_render_aggregation(a, StageType.GROUP) for a in data.aggregations)
        select_clause = f"{group_by}, {aggs}"
    source = _source_table(data.table, default_table, StageType.GROUP)
    return f"SELECT {select_clause} FROM {source} GROUP BY {group_by}"


def _compile_select(data: SelectData, default_table: Optional[str]) -> str:
    columns = ", ".join(_require(data.columns, "columns", StageType.SELECT))
    source = _source_table(data.table, default_table, StageType.SELECT)
    return f"SELECT {columns} FROM {source}"


def _render_order(order: Any) -> str:
    if isinstance(order, str):
        return f"{order} ASC"
    if not isinstance(order, OrderSpec):
        raise CompileError("orderBy entries must be objects or column names", field="orderBy")
    column = _require(order.column, "orderBy.column", StageType.SORT)
    direction = (order.direction or "ASC").strip().upper()
    if direction not in SORT_DIRECTIONS:
        raise CompileError(f"Unsupported sort direction '{order.direction}'", field="orderBy.direction")
    return f"{column} {direction}"


def _compile_sort(data: SortData, default_table: Optional[str]) -> str:
    order_by = ", ".join(_render_order(o) for o in _require(data.orderBy, "orderBy", StageType.SORT))
    source = _source_table(data.table, default_table, StageType.SORT)
    return f"SELECT * FROM {source} ORDER BY {order_by}"


def _compile_aggregate(data: AggregateData, default_table: Optional[str]) -> str:
    aggregations: List[Aggregation] = _require(data.aggregations, "aggregations", StageType.AGGREGATE)
    aggs = ", ".join(_render_aggregation(a, StageType.AGGREGATE) for a in aggregations)
    source = _source_table(data.table, default_table, StageType.AGGREGATE)
    return f"SELECT {aggs} FROM {source}"


def _compile_custom(data: CustomData, default_table: Optional[str]) -> str:
    sql = data.sql
    if not isinstance(sql, str) or not sql.strip():
        raise CompileError("CUSTOM stage requires sql string", field="sql")
    return sql


COMPILERS: Dict[StageType, Callable[[Any, Optional[str]], str]] = {
    StageType.LOAD: _compile_load,
    StageType.JOIN: _compile_join,
    StageType.UNION: _compile_union,
    StageType.FILTER: _compile_filter,
    StageType.GROUP: _compile_group,
    StageType.SELECT: _compile_select,
    StageType.SORT: _compile_sort,
    StageType.AGGREGATE: _compile_aggregate,
    StageType.CUSTOM: _compile_custom,
}


def compile_stage(stage: Stage, default_table: Optional[str] = None) -> str:
    """
    Compile a stage to SQL

    Args:
        stage: Stage to compile (should already have passed the validator)
        default_table: Input table used when the payload names none

    Returns:
        SQL string (no trailing semicolon)

    Raises:
        CompileError: naming the missing or inconsistent field
    """
    try:
        payload = stage.payload()
    except PayloadError as e:
        raise CompileError(f"{stage.type.value} stage payload is malformed: {e}", stage_id=stage.id) from e

    try:
        sql = COMPILERS[stage.type](payload, default_table)
    except CompileError as e:
        e.stage_id = stage.id
        raise

    logger.debug(f"Compiled stage {stage.id} ({stage.type.value}): {sql}")
    return sql
