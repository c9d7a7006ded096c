"""
Chat API endpoints - single-shot and streamed chat turns.

The streamed endpoint forwards engine events as server-sent events and stops
after the terminal event. A disconnecting client closes the event channel,
which releases the producer.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ..agents import ChatEngine
from ..core.errors import TransportError
from ..models import ChatRequest, ChatResult
from .deps import get_engine, peek_engine, reset_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", tags=["chat"])


class AgentStatus(BaseModel):
    initialized: bool
    base_url: Optional[str] = None


@router.get("/status", response_model=AgentStatus)
async def agent_status():
    engine = peek_engine()
    return AgentStatus(
        initialized=engine is not None,
        base_url=engine.base_url if engine else None,
    )


@router.post("/init", response_model=AgentStatus)
async def agent_init(engine: ChatEngine = Depends(get_engine)):
    """Initialize the engine from settings (503 if not configured)."""
    return AgentStatus(initialized=True, base_url=engine.base_url)


@router.post("/reset", status_code=status.HTTP_204_NO_CONTENT)
async def agent_reset():
    reset_engine()


@router.post("/chat", response_model=ChatResult)
async def chat(request: ChatRequest, engine: ChatEngine = Depends(get_engine)):
    """
    Send a message and return the complete reply.

    API errors from the endpoint come back as success=false with HTTP 200;
    transport failures map to 502.
    """
    try:
        return await engine.chat(request)
    except TransportError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/chat/stream")
async def chat_stream(request: ChatRequest, engine: ChatEngine = Depends(get_engine)):
    """Send a message and stream the reply as server-sent events."""
    channel, _task = engine.open_stream(request)

    async def event_generator():
        try:
            async for event in channel:
                yield f"data: {event.model_dump_json()}\n\n"
        finally:
            # Client gone or terminal event sent: release the producer
            channel.close()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )
