"""
Session API endpoints - create, inspect, clear and delete chat sessions.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..agents import ChatEngine
from ..models import AgentMessage, Session
from .deps import get_engine

router = APIRouter(prefix="/agent/sessions", tags=["sessions"])


class CreateSessionRequest(BaseModel):
    model: Optional[str] = None
    system_prompt: Optional[str] = None


class CreateSessionResponse(BaseModel):
    session_id: str


@router.post("", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest,
    engine: ChatEngine = Depends(get_engine),
):
    """Create an empty session."""
    session_id = engine.create_session(body.model, body.system_prompt)
    return CreateSessionResponse(session_id=session_id)


@router.get("", response_model=List[Session])
async def list_sessions(engine: ChatEngine = Depends(get_engine)):
    return engine.list_sessions()


@router.get("/{session_id}", response_model=Session)
async def get_session(session_id: str, engine: ChatEngine = Depends(get_engine)):
    session = engine.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}"
        )
    return session


@router.get("/{session_id}/messages", response_model=List[AgentMessage])
async def get_session_messages(session_id: str, engine: ChatEngine = Depends(get_engine)):
    messages = engine.get_session_messages(session_id)
    if messages is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}"
        )
    return messages


@router.delete("/{session_id}")
async def delete_session(session_id: str, engine: ChatEngine = Depends(get_engine)):
    """Delete a session. Unknown ids report deleted=false."""
    return {"deleted": engine.delete_session(session_id)}


@router.post("/{session_id}/clear")
async def clear_session_messages(session_id: str, engine: ChatEngine = Depends(get_engine)):
    """Clear a session's history, keeping the session itself."""
    return {"cleared": engine.clear_session_messages(session_id)}
