"""
Table model - a materialized result or a loaded source table
"""
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ColumnSchema(BaseModel):
    name: str
    type: str


class Table(BaseModel):
    """
    Catalogue entry for a table living in the analytical engine

    `id` is process-local and stable across re-execution of the producing
    stage; `name` is the SQL identifier and may change with the stage's
    position. `rows` is a bounded preview, the engine holds the full data.
    """
    id: str
    name: str
    columns: List[ColumnSchema] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    stage_id: Optional[str] = None
    source: str = "stage"  # stage | upload | definition

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


def new_table_id() -> str:
    return f"table_{uuid.uuid4().hex[:12]}"
