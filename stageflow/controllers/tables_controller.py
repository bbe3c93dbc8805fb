"""
Tables Controller - source tables and the catalogue
"""
import logging
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from stageflow.core.database import PipelineSession, get_session
from stageflow.models import Table
from stageflow.schemas import TableDefinition, TableListResponse, TableSummary, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tables", tags=["Tables"])


@router.get("", response_model=TableListResponse)
def list_tables(s: PipelineSession = Depends(get_session)):
    """List the catalogue (previews omitted)"""
    return TableListResponse(
        tables=[TableSummary.from_table(t) for t in s.store.tables.values()],
        active_table_id=s.store.active_table_id,
    )


@router.get("/{table_id}", response_model=Table)
def get_table(table_id: str, s: PipelineSession = Depends(get_session)):
    """One table with its preview rows"""
    return s.store.get_table(table_id)


@router.post("/upload", response_model=UploadResponse)
async def upload_csv(file: UploadFile = File(...), s: PipelineSession = Depends(get_session)):
    """
    Upload a CSV file

    Creates the source table and its LOAD stage
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only .csv files are supported")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")

    table, result = s.pipeline.load_csv(file.filename, content)
    return UploadResponse(table=table, stage_id=result.stage.id)


@router.post("", response_model=Table)
def create_table(body: TableDefinition, s: PipelineSession = Depends(get_session)):
    """Create a table from a raw definition"""
    return s.pipeline.create_table(body.model_dump())


@router.put("/active/{table_id}", response_model=Table)
def set_active_table(table_id: str, s: PipelineSession = Depends(get_session)):
    return s.store.set_active_table(table_id)


@router.delete("/{table_id}")
def delete_table(table_id: str, s: PipelineSession = Depends(get_session)):
    table = s.pipeline.delete_table(table_id)
    return {"deleted": table.id, "name": table.name}
