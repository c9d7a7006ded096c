"""
AgentChat - FastAPI application exposing the chat engine over HTTP.

Run with `python -m agentchat.main` or `uvicorn agentchat.main:app`.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .api import chat_router, sessions_router
from .api.deps import peek_engine, reset_engine
from .core.logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def create_app(config: Settings = settings) -> FastAPI:
    """Build the application for the given settings."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config)
        logger.info(f"Starting {config.app_name} v{config.app_version}")
        if config.llm_base_url and config.llm_api_key:
            logger.info(f"Chat endpoint: {config.llm_base_url}, default model: {config.llm_model}")
        else:
            logger.warning("Chat endpoint not configured; chat routes will answer 503")
        yield
        # In-memory sessions do not survive a restart
        reset_engine()
        logger.info(f"Shutting down {config.app_name}")

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Conversation-aware chat engine for OpenAI-compatible endpoints",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if config.log_api_requests:
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(chat_router)
    app.include_router(sessions_router)

    @app.get("/")
    async def root():
        return {
            "app": config.app_name,
            "version": config.app_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check():
        """Liveness plus a summary of the engine state."""
        engine = peek_engine()
        return {
            "status": "healthy",
            "version": config.app_version,
            "llm_configured": bool(config.llm_base_url and config.llm_api_key),
            "engine_initialized": engine is not None,
            "sessions": len(engine.store) if engine else 0,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "agentchat.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
