"""
Server-Sent Events (SSE) utilities for streaming responses
"""
from stageflow.dtos import StreamEvent

DONE_MARKER = "event: done\ndata: {}\n\n"


def format_sse(event: StreamEvent, event_type: str = "message") -> str:
    """
    Format StreamEvent as SSE message

    SSE format:
    event: <type>
    data: <json>
    """
    data = event.model_dump_json()
    return f"event: {event_type}\ndata: {data}\n\n"
