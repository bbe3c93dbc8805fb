"""
LLM utilities (client, prompts, parsers)
"""
from stageflow.pipeline.llm.client import call_llm
from stageflow.pipeline.llm.prompts import build_transform_prompt
from stageflow.pipeline.llm.parsers import parse_json, parse_suggestion

__all__ = [
    "call_llm",
    "build_transform_prompt",
    "parse_json",
    "parse_suggestion",
]
