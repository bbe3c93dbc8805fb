"""
Flow DTOs (import, streaming progress, suggestions)
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from stageflow.dtos.execution import MaterializationResult
from stageflow.models import Stage, Table


class StreamEvent(BaseModel):
    """
    Event emitted while a flow is executed stage by stage
    """
    stage: str  # started, materializing, materialized, dropped, failed, completed
    progress: int  # 0-100
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class DroppedCandidate(BaseModel):
    """A candidate stage rejected before entering the pipeline"""
    index: int
    reason: str
    candidate: Dict[str, Any]


class FlowRunReport(BaseModel):
    """Result of importing and executing a flow definition"""
    mode: str
    results: List[MaterializationResult] = []
    dropped: List[DroppedCandidate] = []
    forward_references: List[List[str]] = []
    failed_stage_id: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return self.failed_stage_id is None


class SuggestionResult(BaseModel):
    """Candidate stages proposed by the LLM, after validation"""
    sql: Optional[str] = None
    explanation: Optional[str] = None
    chart: Optional[Dict[str, Any]] = None
    accepted: List[Stage] = []
    dropped: List[DroppedCandidate] = []
    tables_created: List[Table] = []
    applied: Optional[FlowRunReport] = None
