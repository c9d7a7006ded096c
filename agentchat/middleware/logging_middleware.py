"""
ASGI middleware that logs API requests and responses.

Pure ASGI (not BaseHTTPMiddleware) so streamed event responses pass through
untouched. Event-stream response bodies are never buffered; request bodies
are sanitized and truncated since they may carry base64 images.
"""

import json
import logging
import time
from typing import Optional
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import clip, scrub_payload

logger = logging.getLogger(__name__)


def _sanitize_body(data: bytes, max_length: int = 2000) -> str:
    """Filter sensitive keys if the body is JSON, then truncate."""
    text = data.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
        text = json.dumps(scrub_payload(payload), ensure_ascii=False)
    except json.JSONDecodeError:
        pass
    return clip(text, limit=max_length)


class RequestLoggingMiddleware:
    """Logs method, path, status and duration of every HTTP request."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths to skip (e.g. ["/health"])
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")

        body_chunks = []
        response_chunks = []
        status_code = 0
        streaming = False

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                body_chunks.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code, streaming
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                for key, value in message.get("headers", []):
                    if key.lower() == b"content-type" and value.startswith(b"text/event-stream"):
                        streaming = True
            elif message["type"] == "http.response.body" and not streaming:
                response_chunks.append(message.get("body", b""))
            await send(message)

        logger.info(f"Request started: {method} {path}")

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "method": method,
                    "path": path,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(e),
                }}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        request_body = _sanitize_body(b"".join(body_chunks)) if any(body_chunks) else None
        response_body = _sanitize_body(b"".join(response_chunks)) if any(response_chunks) else None

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        logger.log(
            log_level,
            f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "streaming": streaming,
                "request_body": request_body,
                "response_body": response_body,
            }}
        )
