from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from stageflow.models import Stage, StageType, Table


class StageRequest(BaseModel):
    """Stage authored by the user (id optional for new stages)"""
    id: Optional[str] = None
    type: StageType
    description: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)
    active_table_id: Optional[str] = None  # table the user is looking at


class StageUpdateRequest(BaseModel):
    """Full replacement of a stage payload"""
    type: Optional[StageType] = None
    description: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    active_table_id: Optional[str] = None


class MaterializationResponse(BaseModel):
    stage: Stage
    table: Table
    mapping_updated: bool
    sql: Optional[str] = None
    input_table: Optional[str] = None
    duration_ms: int = 0


class StageListResponse(BaseModel):
    stages: List[Stage]
    stage_tables: Dict[str, str]  # stage id -> table id
    version: int


class ValidateResponse(BaseModel):
    valid: bool
    missing: List[str] = []


class CompileResponse(BaseModel):
    sql: str
    input_table: Optional[str] = None


class GraphNode(BaseModel):
    id: str
    type: StageType
    description: str = ""
    inputs: List[str] = []
    level: int = 0


class GraphEdge(BaseModel):
    source: str
    target: str
    implicit: bool = False


class GraphResponse(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]
