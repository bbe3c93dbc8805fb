"""
Stage Validation
Checks a stage payload is complete enough to compile
"""
import logging
from typing import Any, Callable, Dict, List

from stageflow.core.errors import StageValidationError
from stageflow.models.stage import Stage, StageType

logger = logging.getLogger(__name__)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _check_join(data: Dict[str, Any]) -> List[str]:
    return [f for f in ("leftTable", "rightTable", "leftKey", "rightKey") if not _is_text(data.get(f))]


def _check_filter(data: Dict[str, Any]) -> List[str]:
    missing = [f for f in ("table", "column", "operator") if not _is_text(data.get(f))]
    # 0 and False are meaningful filter values; only absent or "" is rejected
    value = data.get("value")
    if value is None or value == "":
        missing.append("value")
    return missing


def _check_union(data: Dict[str, Any]) -> List[str]:
    return [] if _is_non_empty_list(data.get("tables")) else ["tables"]


def _check_group(data: Dict[str, Any]) -> List[str]:
    return [] if _is_non_empty_list(data.get("groupBy")) else ["groupBy"]


def _check_select(data: Dict[str, Any]) -> List[str]:
    return [] if _is_non_empty_list(data.get("columns")) else ["columns"]


def _check_sort(data: Dict[str, Any]) -> List[str]:
    return [] if _is_non_empty_list(data.get("orderBy")) else ["orderBy"]


def _check_custom(data: Dict[str, Any]) -> List[str]:
    sql = data.get("sql")
    return [] if isinstance(sql, str) and sql.strip() else ["sql"]


def _check_nothing(data: Dict[str, Any]) -> List[str]:
    return []


VALIDATORS: Dict[StageType, Callable[[Dict[str, Any]], List[str]]] = {
    StageType.LOAD: _check_nothing,
    StageType.JOIN: _check_join,
    StageType.UNION: _check_union,
    StageType.FILTER: _check_filter,
    StageType.GROUP: _check_group,
    StageType.SELECT: _check_select,
    StageType.SORT: _check_sort,
    StageType.AGGREGATE: _check_nothing,
    StageType.CUSTOM: _check_custom,
}


def missing_fields(stage: Stage) -> List[str]:
    """
    Names of the required fields that are absent or empty

    Returns an empty list for a complete stage.
    """
    check = VALIDATORS[stage.type]
    return check(stage.data or {})


def validate(stage: Stage) -> bool:
    """True if the stage can be handed to the compiler"""
    return not missing_fields(stage)


def ensure_valid(stage: Stage) -> None:
    """
    Hard gate before compilation

    Raises:
        StageValidationError: listing the missing fields
    """
    missing = missing_fields(stage)
    if missing:
        logger.warning(f"Stage {stage.id} ({stage.type.value}) rejected: missing {missing}")
        raise StageValidationError(stage.id, missing, stage_type=stage.type.value)
