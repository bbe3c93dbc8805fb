"""
Flow interchange format

A saved pipeline is a JSON array of {id, type, description, data}.
Exported ids are renumbered stage_1..stage_n; imported candidates get
fresh ids so they never collide with live stages.
"""
import logging
from typing import Any, Dict, List, Sequence, Tuple

from pydantic import ValidationError as PayloadError

from stageflow.dtos import DroppedCandidate
from stageflow.models.stage import Stage, StageType, new_stage_id
from stageflow.pipeline.stages.validator import missing_fields

logger = logging.getLogger(__name__)


def export_stages(stages: Sequence[Stage]) -> List[Dict[str, Any]]:
    """Serialize the ordered stage list to the stable interchange form"""
    return [
        {
            "id": f"stage_{i}",
            "type": stage.type.value,
            "description": stage.description,
            "data": dict(stage.data),
        }
        for i, stage in enumerate(stages, start=1)
    ]


def stage_from_candidate(candidate: Dict[str, Any], keep_id: bool = False) -> Stage:
    """
    Build a Stage from a raw candidate object

    Raises:
        ValueError: unknown type or malformed object
    """
    if not isinstance(candidate, dict):
        raise ValueError("candidate must be an object")

    raw_type = candidate.get("type")
    try:
        stage_type = StageType(str(raw_type).strip().upper())
    except ValueError:
        raise ValueError(f"unknown stage type {raw_type!r}")

    data = candidate.get("data") or {}
    if not isinstance(data, dict):
        raise ValueError("data must be an object")

    stage_id = candidate.get("id") if keep_id else None
    try:
        return Stage(
            id=stage_id or new_stage_id(),
            type=stage_type,
            description=candidate.get("description") or "",
            data=data,
        )
    except PayloadError as e:
        raise ValueError(str(e))


def screen_candidates(
    candidates: Sequence[Any],
    keep_ids: bool = False,
    start_index: int = 0,
) -> Tuple[List[Stage], List[DroppedCandidate]]:
    """
    Convert and validate candidate stages

    Candidates that cannot be converted or fail validation are dropped,
    never coerced.

    Returns:
        (accepted stages in input order, dropped candidates with reasons)
    """
    accepted: List[Stage] = []
    dropped: List[DroppedCandidate] = []
    seen_ids = set()

    for offset, candidate in enumerate(candidates):
        index = start_index + offset
        raw = candidate if isinstance(candidate, dict) else {"value": candidate}
        try:
            stage = stage_from_candidate(candidate, keep_id=keep_ids)
        except ValueError as e:
            dropped.append(DroppedCandidate(index=index, reason=str(e), candidate=raw))
            continue

        if stage.id in seen_ids:
            stage = stage.replace(id=new_stage_id())
        seen_ids.add(stage.id)

        missing = missing_fields(stage)
        if missing:
            reason = f"{stage.type.value} stage missing {', '.join(missing)}"
            dropped.append(DroppedCandidate(index=index, reason=reason, candidate=raw))
            continue
        accepted.append(stage)

    if dropped:
        logger.warning(f"Dropped {len(dropped)} of {len(candidates)} candidate stage(s)")
    return accepted, dropped

