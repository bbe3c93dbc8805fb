"""
Repository layer for pipeline state
"""
from stageflow.repositories.pipeline_repository import PipelineStore, PipelineSnapshot

__all__ = [
    "PipelineStore",
    "PipelineSnapshot",
]
