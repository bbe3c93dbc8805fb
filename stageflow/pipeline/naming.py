"""
Table naming rules

Result tables are named from the producing stage's position in the
ordered stage list, so re-running a stage that has not moved replaces
the same engine table.
"""
import re
from pathlib import PurePath
from typing import Union

from stageflow.models.stage import StageType

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def table_name_for(stage_index: int, stage_type: Union[StageType, str]) -> str:
    """result_stage_<index>_<lowercased type>"""
    if stage_index < 0:
        raise ValueError(f"stage_index must be >= 0, got {stage_index}")
    type_name = stage_type.value if isinstance(stage_type, StageType) else str(stage_type)
    return f"result_stage_{stage_index}_{type_name.lower()}"


def joined_table_name(left_table: str, right_table: str) -> str:
    """Synthetic output name of a join, referenced by later stages"""
    return f"joined_{left_table}_{right_table}"


def source_table_name(file_name: str) -> str:
    """orders.csv -> table_orders_csv"""
    p = PurePath(file_name)
    stem = _sanitize(p.stem) or "data"
    ext = _sanitize(p.suffix.lstrip("."))
    return f"table_{stem}_{ext}" if ext else f"table_{stem}"


def is_safe_identifier(name: str) -> bool:
    return isinstance(name, str) and bool(_IDENTIFIER.match(name))


def _sanitize(part: str) -> str:
    cleaned = re.sub(r"[^a-z0-9_]", "_", part.lower())
    return re.sub(r"_+", "_", cleaned).strip("_")


def staging_table_name(table_name: str) -> str:
    """Scratch name a result is built under before it replaces `table_name`"""
    return f"{table_name}__staging"
