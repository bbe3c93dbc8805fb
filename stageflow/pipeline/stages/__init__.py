"""
Stage validation (required fields per stage type)
"""
from stageflow.pipeline.stages.validator import (
    VALIDATORS,
    missing_fields,
    validate,
    ensure_valid
)

__all__ = [
    "VALIDATORS",
    "missing_fields",
    "validate",
    "ensure_valid",
]
