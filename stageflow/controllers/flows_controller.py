"""
Flows Controller - export and import whole pipelines
"""
import logging
import asyncio
from typing import AsyncGenerator, Optional
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from stageflow.core.database import PipelineSession, get_session
from stageflow.core.errors import StageflowError
from stageflow.core.streaming import DONE_MARKER, format_sse
from stageflow.dtos import FlowRunReport, StreamEvent
from stageflow.schemas import ImportFlowRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flows", tags=["Flows"])


@router.get("/export")
def export_flow(s: PipelineSession = Depends(get_session)):
    """Ordered stages as a JSON array with ids stage_1..stage_n"""
    return s.pipeline.export_flow()


@router.post("/import", response_model=FlowRunReport)
def import_flow(body: ImportFlowRequest, s: PipelineSession = Depends(get_session)):
    """
    Import and materialize a flow

    Stops at the first failing stage; the report says which one and why
    """
    return s.pipeline.import_flow(body.stages, mode=body.mode)


@router.post("/import_stream")
async def import_flow_stream(body: ImportFlowRequest, s: PipelineSession = Depends(get_session)):
    """
    Streaming flow import

    Returns Server-Sent Events (SSE), one per stage transition

    Event types:
    - started, dropped, materializing, materialized, failed, completed
    - result: final FlowRunReport
    - error: unexpected failure
    - done: final marker (no data)
    """
    loop = asyncio.get_running_loop()
    event_queue: asyncio.Queue[Optional[StreamEvent]] = asyncio.Queue()

    def emit_event(event: StreamEvent):
        """Callback to emit events from the worker thread"""
        loop.call_soon_threadsafe(event_queue.put_nowait, event)

    async def run_import() -> Optional[FlowRunReport]:
        try:
            return await loop.run_in_executor(
                None,
                lambda: s.pipeline.import_flow(body.stages, mode=body.mode, event_callback=emit_event),
            )
        except StageflowError as e:
            logger.error(f"Flow import error: {e.message}")
            emit_event(StreamEvent(stage="error", progress=0, error=e.message))
            return None
        finally:
            loop.call_soon_threadsafe(event_queue.put_nowait, None)

    async def event_generator() -> AsyncGenerator[str, None]:
        task = asyncio.create_task(run_import())

        while True:
            event = await event_queue.get()
            if event is None:
                break
            yield format_sse(event, event_type=event.stage)

        report = await task
        if report is not None:
            final_event = StreamEvent(stage="result", progress=100, data=report.model_dump(mode="json"))
            yield format_sse(final_event, event_type="result")

        yield DONE_MARKER

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )
