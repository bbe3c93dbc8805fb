from .stage_schema import (
    StageRequest,
    StageUpdateRequest,
    MaterializationResponse,
    StageListResponse,
    ValidateResponse,
    CompileResponse,
    GraphNode,
    GraphEdge,
    GraphResponse,
)
from .table_schema import TableDefinition, TableSummary, TableListResponse, UploadResponse
from .flow_schema import ImportFlowRequest, SuggestionRequest
