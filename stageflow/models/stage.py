"""
Stage model - one declarative step of a transformation pipeline

Pure data. The wire form is {id, type, description, data} with camelCase
payload keys inside `data`; the typed payload views below are read-only
helpers used by the validator and the compiler.
"""
import random
import string
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field


class StageType(str, Enum):
    LOAD = "LOAD"
    JOIN = "JOIN"
    UNION = "UNION"
    FILTER = "FILTER"
    GROUP = "GROUP"
    SELECT = "SELECT"
    SORT = "SORT"
    AGGREGATE = "AGGREGATE"
    CUSTOM = "CUSTOM"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class LoadData(_Payload):
    tableName: Optional[str] = None
    fileName: Optional[str] = None


class JoinData(_Payload):
    joinType: Optional[str] = None  # INNER | LEFT | RIGHT | FULL OUTER
    leftTable: Optional[str] = None
    rightTable: Optional[str] = None
    leftKey: Optional[str] = None
    rightKey: Optional[str] = None


class UnionData(_Payload):
    unionType: Optional[str] = None  # UNION | UNION ALL
    tables: Optional[List[str]] = None


class FilterCondition(_Payload):
    column: Optional[str] = None
    operator: Optional[str] = None
    value: Any = None
    logic: Optional[str] = None  # AND | OR


class FilterData(_Payload):
    table: Optional[str] = None
    column: Optional[str] = None
    operator: Optional[str] = None
    value: Any = None
    conditions: Optional[List[FilterCondition]] = None


class Aggregation(_Payload):
    function: Optional[str] = None
    column: Optional[str] = None
    alias: Optional[str] = None


class GroupData(_Payload):
    table: Optional[str] = None
    groupBy: Optional[List[str]] = None
    aggregations: Optional[List[Aggregation]] = None


class SelectData(_Payload):
    table: Optional[str] = None
    columns: Optional[List[str]] = None


class OrderSpec(_Payload):
    column: Optional[str] = None
    direction: Optional[str] = None


class SortData(_Payload):
    table: Optional[str] = None
    orderBy: Optional[List[Union[OrderSpec, str]]] = None


class AggregateData(_Payload):
    table: Optional[str] = None
    aggregations: Optional[List[Aggregation]] = None


class CustomData(_Payload):
    sql: Optional[str] = None


PAYLOAD_MODELS: Dict[StageType, Type[_Payload]] = {
    StageType.LOAD: LoadData,
    StageType.JOIN: JoinData,
    StageType.UNION: UnionData,
    StageType.FILTER: FilterData,
    StageType.GROUP: GroupData,
    StageType.SELECT: SelectData,
    StageType.SORT: SortData,
    StageType.AGGREGATE: AggregateData,
    StageType.CUSTOM: CustomData,
}


class Stage(BaseModel):
    """
    A pipeline step: closed tagged union over StageType

    `data` keeps the raw payload as received so JSON value types
    (number vs string filter values) survive untouched.
    """
    id: str
    type: StageType
    description: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)

    def payload(self) -> _Payload:
        """Typed view of `data` for this stage's type"""
        return PAYLOAD_MODELS[self.type].model_validate(self.data)

    def referenced_table(self) -> Optional[str]:
        table = self.data.get("table")
        return table if isinstance(table, str) and table else None

    def replace(self, **changes) -> "Stage":
        """Edits produce a new stage object with the same id"""
        return self.model_copy(update=changes, deep=True)


def new_stage_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"stage_{int(time.time() * 1000)}_{suffix}"
