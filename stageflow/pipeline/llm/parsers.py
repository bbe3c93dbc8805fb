"""
LLM response parsers
"""
import json
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def parse_json(response: str) -> dict:
    """Parse a JSON object from an LLM response (code fences allowed)"""
    content = response.strip()

    # Remove ```json ... ```
    if content.startswith("```"):
        parts = content.split("```")
        if len(parts) >= 2:
            content = parts[1]
            if content.lower().startswith("json"):
                content = content[4:]

    data = json.loads(content.strip())
    if not isinstance(data, dict):
        raise ValueError("LLM response is not a JSON object")
    return data


def parse_suggestion(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a parsed suggestion

    Returns:
        {"sql", "explanation", "chart", "stages": [...], "tables": [...]}
    """
    stages = data.get("transformationStages")
    if not isinstance(stages, list):
        logger.warning("Suggestion has no transformationStages array")
        stages = []

    tables = data.get("tables")
    if not isinstance(tables, list):
        tables = []

    chart = None
    chart_type = data.get("chartType")
    if chart_type and chart_type != "none":
        chart = {
            "type": chart_type,
            "x": data.get("xAxis"),
            "y": data.get("yAxis"),
            "z": data.get("zAxis"),
        }

    return {
        "sql": data.get("sql") if isinstance(data.get("sql"), str) else None,
        "explanation": data.get("explanation") if isinstance(data.get("explanation"), str) else None,
        "chart": chart,
        "stages": stages,
        "tables": [t for t in tables if isinstance(t, dict)],
    }
