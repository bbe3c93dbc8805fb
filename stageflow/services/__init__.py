"""
Service layer for business logic
"""
from stageflow.services.materialization_service import MaterializationService
from stageflow.services.pipeline_service import PipelineService
from stageflow.services.suggestion_service import SuggestionService

__all__ = [
    "MaterializationService",
    "PipelineService",
    "SuggestionService",
]
