"""
Session wiring: one analytical engine, one pipeline store and the services on top
"""
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from stageflow.core.config import settings
from stageflow.pipeline.sql.executor import DuckDBEngine
from stageflow.repositories.pipeline_repository import PipelineStore
from stageflow.services.materialization_service import MaterializationService
from stageflow.services.pipeline_service import PipelineService
from stageflow.services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)


@dataclass
class PipelineSession:
    engine: DuckDBEngine
    store: PipelineStore
    pipeline: PipelineService
    suggestions: SuggestionService


def create_session(database: Optional[str] = None, llm_enabled: Optional[bool] = None) -> PipelineSession:
    engine = DuckDBEngine(database or settings.DUCKDB_DATABASE)
    store = PipelineStore()
    materializer = MaterializationService(engine, store, preview_rows=settings.PREVIEW_ROW_LIMIT)
    pipeline = PipelineService(engine, store, materializer)
    return PipelineSession(
        engine=engine,
        store=store,
        pipeline=pipeline,
        suggestions=SuggestionService(pipeline, enabled=llm_enabled),
    )


_session: Optional[PipelineSession] = None
_session_lock = threading.Lock()


def get_session() -> PipelineSession:
    """Dependency for getting the pipeline session"""
    global _session
    with _session_lock:
        if _session is None:
            _session = create_session()
            logger.info(f"Pipeline session started on DuckDB '{settings.DUCKDB_DATABASE}'")
        return _session

