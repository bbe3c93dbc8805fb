"""
Stages Controller - author, edit and inspect pipeline stages
"""
import logging
from fastapi import APIRouter, Depends

from stageflow.core.database import PipelineSession, get_session
from stageflow.models import Stage, new_stage_id
from stageflow.pipeline.stages.validator import missing_fields
from stageflow.schemas import (
    CompileResponse,
    GraphEdge,
    GraphNode,
    GraphResponse,
    MaterializationResponse,
    StageListResponse,
    StageRequest,
    StageUpdateRequest,
    ValidateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stages", tags=["Stages"])


def _to_stage(body: StageRequest) -> Stage:
    return Stage(
        id=body.id or new_stage_id(),
        type=body.type,
        description=body.description,
        data=body.data,
    )


@router.get("", response_model=StageListResponse)
def list_stages(s: PipelineSession = Depends(get_session)):
    snap = s.store.snapshot()
    return StageListResponse(stages=snap.stages, stage_tables=snap.stage_tables, version=snap.version)


@router.get("/graph", response_model=GraphResponse)
def get_graph(s: PipelineSession = Depends(get_session)):
    """Dependency graph inferred from table names"""
    nodes, edges = s.pipeline.graph()
    return GraphResponse(
        nodes=[
            GraphNode(
                id=n.id,
                type=n.stage.type,
                description=n.stage.description,
                inputs=n.inputs,
                level=n.level,
            )
            for n in nodes.values()
        ],
        edges=[GraphEdge(source=e.source, target=e.target, implicit=e.implicit) for e in edges],
    )


@router.post("", response_model=MaterializationResponse)
def add_stage(body: StageRequest, s: PipelineSession = Depends(get_session)):
    """Append a stage and materialize it"""
    result = s.pipeline.add_stage(_to_stage(body), active_table_id=body.active_table_id)
    return MaterializationResponse(**result.model_dump())


@router.put("/{stage_id}", response_model=MaterializationResponse)
def update_stage(stage_id: str, body: StageUpdateRequest, s: PipelineSession = Depends(get_session)):
    """Replace a stage payload and re-materialize it in place"""
    result = s.pipeline.update_stage(
        stage_id,
        body.data,
        description=body.description,
        stage_type=body.type,
        active_table_id=body.active_table_id,
    )
    return MaterializationResponse(**result.model_dump())


@router.delete("/{stage_id}")
def delete_stage(stage_id: str, s: PipelineSession = Depends(get_session)):
    stage = s.pipeline.delete_stage(stage_id)
    return {"deleted": stage.id}


@router.post("/validate", response_model=ValidateResponse)
def validate_stage(body: StageRequest):
    """Check required fields without running anything"""
    missing = missing_fields(_to_stage(body))
    return ValidateResponse(valid=not missing, missing=missing)


@router.post("/compile", response_model=CompileResponse)
def compile_stage(body: StageRequest, s: PipelineSession = Depends(get_session)):
    """SQL the stage would run, against the current pipeline"""
    sql, input_table = s.pipeline.compile_preview(_to_stage(body), active_table_id=body.active_table_id)
    return CompileResponse(sql=sql, input_table=input_table)
