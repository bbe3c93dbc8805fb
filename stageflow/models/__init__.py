"""
Models - pipeline data types (stages and tables)
"""
from stageflow.models.stage import (
    StageType,
    Stage,
    PAYLOAD_MODELS,
    LoadData,
    JoinData,
    UnionData,
    FilterCondition,
    FilterData,
    Aggregation,
    GroupData,
    SelectData,
    OrderSpec,
    SortData,
    AggregateData,
    CustomData,
    new_stage_id,
)
from stageflow.models.table import ColumnSchema, Table, new_table_id

__all__ = [
    "StageType",
    "Stage",
    "PAYLOAD_MODELS",
    "LoadData",
    "JoinData",
    "UnionData",
    "FilterCondition",
    "FilterData",
    "Aggregation",
    "GroupData",
    "SelectData",
    "OrderSpec",
    "SortData",
    "AggregateData",
    "CustomData",
    "new_stage_id",
    "ColumnSchema",
    "Table",
    "new_table_id",
]
