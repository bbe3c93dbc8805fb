"""
Domain exceptions for the stage pipeline

Raised by the validator, compiler, engine adapter and services.
They do not know about HTTP; core.exception_handlers maps them to responses.
"""
from typing import List, Optional


class StageflowError(Exception):
    """Base exception for all pipeline errors"""

    kind = "error"

    def __init__(self, message: str, stage_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage_id = stage_id

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.kind, "stage_id": self.stage_id}


class StageValidationError(StageflowError):
    """A stage payload is incomplete for its declared type"""

    kind = "validation"

    def __init__(self, stage_id: Optional[str], missing: List[str], stage_type: Optional[str] = None):
        fields = ", ".join(missing)
        label = f"{stage_type} stage" if stage_type else "Stage"
        super().__init__(f"{label} is incomplete: missing {fields}", stage_id=stage_id)
        self.missing = list(missing)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["missing"] = self.missing
        return data


class CompileError(StageflowError):
    """Payload reached the compiler without a field it needs, or is inconsistent"""

    kind = "compile"

    def __init__(self, message: str, field: Optional[str] = None, stage_id: Optional[str] = None):
        super().__init__(message, stage_id=stage_id)
        self.field = field


class ResolutionError(StageflowError):
    """No input table could be resolved for a stage"""

    kind = "resolution"


class ExecutionError(StageflowError):
    """The analytical engine rejected the compiled SQL"""

    kind = "execution"

    def __init__(self, stage_id: Optional[str], message: str, description: str = "", sql: Optional[str] = None):
        prefix = f"Stage '{description}' failed" if description else f"Stage {stage_id} failed"
        super().__init__(f"{prefix}: {message}", stage_id=stage_id)
        self.engine_message = message
        self.description = description
        self.sql = sql


class EngineError(StageflowError):
    """Any failure reported by the analytical engine"""

    kind = "engine"


class StageNotFoundError(StageflowError):
    kind = "not_found"

    def __init__(self, stage_id: str):
        super().__init__(f"Stage '{stage_id}' not found", stage_id=stage_id)


class TableNotFoundError(StageflowError):
    kind = "not_found"

    def __init__(self, table_ref: str):
        super().__init__(f"Table '{table_ref}' not found")
        self.table_ref = table_ref


class TableInUseError(StageflowError):
    kind = "conflict"


class SuggestionUnavailableError(StageflowError):
    """LLM suggestions are disabled or not configured"""

    kind = "suggestion_unavailable"


class SuggestionError(StageflowError):
    """LLM call failed or returned something we cannot parse"""

    kind = "suggestion"
