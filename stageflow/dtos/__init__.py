"""
DTOs (Data Transfer Objects)
Internal objects for passing data between layers
"""
from stageflow.dtos.execution import MaterializationResult
from stageflow.dtos.flow import StreamEvent, DroppedCandidate, FlowRunReport, SuggestionResult

__all__ = [
    "MaterializationResult",
    "StreamEvent",
    "DroppedCandidate",
    "FlowRunReport",
    "SuggestionResult",
]
