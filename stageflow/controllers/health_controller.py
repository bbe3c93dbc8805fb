"""
Health Controller - liveness and client-facing configuration
"""
from fastapi import APIRouter, Depends

from stageflow.core.database import PipelineSession, get_session

router = APIRouter(tags=["Health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/config")
def client_config(s: PipelineSession = Depends(get_session)):
    """Feature flags the UI needs"""
    return {"llm_enabled": s.suggestions.enabled}
