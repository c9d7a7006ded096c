"""
Engine dependency for the API routers.
The engine is built lazily from settings on first use.
"""

import logging
import threading
from typing import Optional
from fastapi import HTTPException, status

from ..agents import ChatEngine
from ..config import settings
from ..core.errors import ConfigError

logger = logging.getLogger(__name__)

_engine: Optional[ChatEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> ChatEngine:
    """Return the shared engine, creating it from settings if needed."""
    global _engine
    with _engine_lock:
        if _engine is None:
            try:
                _engine = ChatEngine.from_settings(settings)
            except ConfigError as e:
                logger.warning(f"Chat engine not configured: {e}")
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail=f"Chat engine not configured: {e}"
                )
            logger.info(f"Chat engine initialized: {_engine.base_url}")
        return _engine


def peek_engine() -> Optional[ChatEngine]:
    return _engine


def reset_engine() -> None:
    """Drop the shared engine. All in-memory sessions are discarded."""
    global _engine
    with _engine_lock:
        _engine = None
    logger.info("Chat engine reset")
