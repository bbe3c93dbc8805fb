from pydantic import BaseModel, Field
from typing import List, Optional, Any, Union

from stageflow.models import ColumnSchema, Table


class TableDefinition(BaseModel):
    """Raw table definition: rows are positional lists or objects keyed by column"""
    name: str
    columns: List[Union[str, ColumnSchema]]
    rows: List[Any] = Field(default_factory=list)


class TableSummary(BaseModel):
    id: str
    name: str
    columns: List[ColumnSchema]
    row_count: int
    stage_id: Optional[str] = None
    source: str

    @classmethod
    def from_table(cls, table: Table) -> "TableSummary":
        return cls(
            id=table.id,
            name=table.name,
            columns=table.columns,
            row_count=table.row_count,
            stage_id=table.stage_id,
            source=table.source,
        )


class TableListResponse(BaseModel):
    tables: List[TableSummary]
    active_table_id: Optional[str] = None


class UploadResponse(BaseModel):
    table: Table
    stage_id: str
