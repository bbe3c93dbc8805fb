"""
Materialization DTOs
"""
from typing import Optional
from pydantic import BaseModel

from stageflow.models import Stage, Table


class MaterializationResult(BaseModel):
    """
    Outcome of materializing one stage

    mapping_updated is True when the stage already had a Stage->Table
    entry and the same table id was updated in place.
    """
    stage: Stage
    table: Table
    mapping_updated: bool
    sql: Optional[str] = None  # None for LOAD stages
    input_table: Optional[str] = None
    duration_ms: int = 0
