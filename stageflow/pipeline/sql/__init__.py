"""
SQL utilities (compilation, execution, catalogue summaries)
"""
from stageflow.pipeline.sql.compiler import compile_stage, render_literal, COMPILERS
from stageflow.pipeline.sql.executor import AnalyticalEngine, DuckDBEngine
from stageflow.pipeline.sql.catalog import summarize_catalog

__all__ = [
    "compile_stage",
    "render_literal",
    "COMPILERS",
    "AnalyticalEngine",
    "DuckDBEngine",
    "summarize_catalog",
]
