"""
Service for LLM stage suggestions
Turns a natural-language goal into validated candidate stages
"""
import json
import logging
from typing import Optional

import httpx

from stageflow.core.config import settings
from stageflow.core.errors import StageflowError, SuggestionError, SuggestionUnavailableError
from stageflow.dtos import SuggestionResult
from stageflow.pipeline.flow import screen_candidates
from stageflow.pipeline.llm import client
from stageflow.pipeline.llm.parsers import parse_json, parse_suggestion
from stageflow.pipeline.llm.prompts import build_transform_prompt
from stageflow.pipeline.sql.catalog import summarize_catalog
from stageflow.services.pipeline_service import EventCallback, PipelineService

logger = logging.getLogger(__name__)


class SuggestionService:
    """
    Business logic for suggestions

    The LLM only produces candidates. They go through the same validation
    as user-authored stages and are never coerced.
    """

    def __init__(self, pipeline: PipelineService, enabled: Optional[bool] = None):
        self.pipeline = pipeline
        self.enabled = settings.llm_enabled if enabled is None else enabled

    def suggest(
        self,
        user_prompt: str,
        apply: bool = False,
        event_callback: Optional[EventCallback] = None,
    ) -> SuggestionResult:
        """
        Ask the LLM for stages that reach `user_prompt`

        Args:
            user_prompt: Natural-language goal
            apply: Materialize accepted stages after the current ones

        Raises:
            SuggestionUnavailableError: LLM disabled or not configured
            SuggestionError: LLM call failed or the response is unusable
        """
        if not self.enabled:
            raise SuggestionUnavailableError("LLM suggestions are disabled or not configured")
        if not user_prompt or not user_prompt.strip():
            raise SuggestionError("Prompt is empty")

        schema_summary = summarize_catalog(self.pipeline.store.tables.values())
        messages = build_transform_prompt(user_prompt.strip(), schema_summary)

        try:
            raw = client.call_llm(messages)
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            raise SuggestionError(f"LLM call failed: {e}") from e

        try:
            suggestion = parse_suggestion(parse_json(raw))
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Unparseable LLM response: {raw[:200]!r}")
            raise SuggestionError(f"LLM returned an invalid response: {e}") from e

        # Raw tables first so the candidates can reference them
        tables_created = []
        for definition in suggestion["tables"]:
            try:
                tables_created.append(self.pipeline.create_table(definition))
            except StageflowError as e:
                logger.warning(f"Skipping suggested table {definition.get('name')!r}: {e.message}")

        accepted, dropped = screen_candidates(suggestion["stages"])
        logger.info(
            f"Suggestion for {user_prompt[:60]!r}: {len(accepted)} accepted, "
            f"{len(dropped)} dropped, {len(tables_created)} table(s) created"
        )

        result = SuggestionResult(
            sql=suggestion["sql"],
            explanation=suggestion["explanation"],
            chart=suggestion["chart"],
            accepted=accepted,
            dropped=dropped,
            tables_created=tables_created,
        )

        if apply and accepted:
            items = [s.model_dump(mode="json") for s in accepted]
            result.applied = self.pipeline.import_flow(
                items, mode="append", event_callback=event_callback, keep_ids=True
            )
        return result
