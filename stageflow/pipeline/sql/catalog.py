"""
Catalogue summaries for LLM context
"""
from typing import Iterable, List

from stageflow.models.table import Table


def summarize_catalog(tables: Iterable[Table], max_chars: int = 4000, max_columns: int = 24) -> str:
    """
    Generate a summarized schema description for LLM context

    One line per table: - name(col:type, ...) [N rows]
    """
    lines: List[str] = []
    for t in tables:
        # Limit columns to avoid token overflow
        cols = ", ".join(f"{c.name}:{c.type}" for c in t.columns[:max_columns])
        lines.append(f"- {t.name}({cols}) [{t.row_count} rows]")

    if not lines:
        return "Available tables: (none)"

    text = "Available tables:\n" + "\n".join(lines)
    return text[:max_chars]
