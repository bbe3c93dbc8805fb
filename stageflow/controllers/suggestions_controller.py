"""
Suggestions Controller - natural language to candidate stages
"""
import logging
from fastapi import APIRouter, Depends

from stageflow.core.database import PipelineSession, get_session
from stageflow.dtos import SuggestionResult
from stageflow.schemas import SuggestionRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suggestions", tags=["Suggestions"])


@router.post("/transform", response_model=SuggestionResult)
def suggest_transform(body: SuggestionRequest, s: PipelineSession = Depends(get_session)):
    """
    Ask the LLM for stages that reach the prompt's goal

    Candidates failing validation are returned under `dropped`.
    With apply=true the accepted ones are materialized after the current stages.
    """
    return s.suggestions.suggest(body.prompt, apply=body.apply)
