"""
Chat Transport - executes one turn against the endpoint and commits history.

Non-streaming: API errors (non-2xx) are returned as ChatResult(success=False);
connection failures and timeouts raise TransportError.
Streaming: every failure becomes a single Error event on the sink.
"""

import asyncio
import logging
import time
from typing import List, Optional

import httpx
from pydantic import ValidationError

from ..core.errors import TransportError
from ..models.chat import ChatCompletionResponse, ChatResult, GenerationConfig, ImageData
from ..models.session import Session
from ..storage import SessionStore
from .channel import EventSink
from .client import ChatCompletionsClient
from .message_builder import MessageBuilder
from .stream_decoder import DecoderState, StreamDecoder

logger = logging.getLogger(__name__)


def format_api_error(response: httpx.Response, body: str) -> str:
    return f"API error ({response.status_code} {response.reason_phrase}): {body}"


class ChatTransport:
    """Runs chat exchanges, plain or streamed, for an optional session."""

    def __init__(
        self,
        client: ChatCompletionsClient,
        store: SessionStore,
        builder: MessageBuilder,
        log_calls: bool = True,
    ):
        self.client = client
        self.store = store
        self.builder = builder
        self.log_calls = log_calls

    def _snapshot(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        session = self.store.get(session_id)
        if session is None:
            logger.info(f"Session {session_id} not found, using a stateless exchange")
        return session

    def _commit(
        self,
        session_id: Optional[str],
        user_text: str,
        images: Optional[List[ImageData]],
        assistant_text: str,
    ) -> None:
        if session_id:
            self.store.append_turn(session_id, user_text, images, assistant_text)

    async def send(
        self,
        session_id: Optional[str],
        user_text: str,
        images: Optional[List[ImageData]],
        model: str,
        config: GenerationConfig,
    ) -> ChatResult:
        """
        Perform a single non-streaming exchange.

        Args:
            session_id: Session to read history from and commit to (optional)
            user_text: The user's message
            images: Optional inline images
            model: Model name to request
            config: Generation parameters

        Returns:
            ChatResult: success=False with status and body for API errors

        Raises:
            TransportError: On connection failure, timeout, or an undecodable body
        """
        start_time = time.time()
        session = self._snapshot(session_id)
        messages = self.builder.build(session, user_text, images)
        payload = self.client.build_payload(model, messages, config, stream=False)

        try:
            response = await self.client.post(payload)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Chat request failed: {e!r}",
                exc_info=True,
                extra={"extra_fields": {
                    "model": model,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(e),
                }}
            )
            raise TransportError(f"Request failed: {e!r}") from e

        if not response.is_success:
            body = response.text
            logger.error(f"Chat request rejected: {response.status_code} - {body[:500]}")
            return ChatResult(
                content="",
                model=model,
                success=False,
                error=format_api_error(response, body),
            )

        try:
            data = ChatCompletionResponse.model_validate_json(response.content)
        except (ValidationError, ValueError) as e:
            logger.error(f"Failed to parse chat response: {e}", exc_info=True)
            raise TransportError(f"Failed to parse response: {e}") from e

        content = data.first_content
        usage = data.usage.to_token_usage() if data.usage else None

        self._commit(session_id, user_text, images, content)

        if self.log_calls:
            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "Chat call completed",
                extra={"extra_fields": {
                    "model": data.model or model,
                    "prompt_tokens": usage.input_tokens if usage else 0,
                    "completion_tokens": usage.output_tokens if usage else 0,
                    "content_length": len(content),
                    "duration_ms": round(duration_ms, 2),
                }}
            )

        return ChatResult(
            content=content,
            model=data.model or model,
            usage=usage,
            success=True,
        )

    async def send_stream(
        self,
        session_id: Optional[str],
        user_text: str,
        images: Optional[List[ImageData]],
        model: str,
        config: GenerationConfig,
        sink: EventSink,
    ) -> DecoderState:
        """
        Perform a streaming exchange, delivering events to the sink.

        Exactly one terminal event (done or error) reaches the sink unless the
        consumer abandons the channel first. Nothing is raised for transport
        or API failures.

        Returns:
            DecoderState: COMPLETE, FAILED or CANCELLED
        """
        start_time = time.time()
        session = self._snapshot(session_id)
        messages = self.builder.build(session, user_text, images)
        payload = self.client.build_payload(model, messages, config, stream=True)

        decoder = StreamDecoder(
            sink,
            on_complete=lambda full: self._commit(session_id, user_text, images, full),
        )

        async def _exchange() -> None:
            async with self.client.stream(payload) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error(f"Chat stream rejected: {response.status_code} - {body[:500]}")
                    await decoder.fail(format_api_error(response, body))
                    return
                await decoder.run(response.aiter_bytes())

        try:
            # Overall deadline: a stream that keeps trickling bytes is still cut off
            await asyncio.wait_for(_exchange(), timeout=self.client.request_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Chat stream timed out after {self.client.request_timeout}s")
            await decoder.fail(f"Request timed out after {self.client.request_timeout}s")
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(f"Chat stream request failed: {e!r}", exc_info=True)
            await decoder.fail(f"Request failed: {e!r}")

        if self.log_calls and decoder.state == DecoderState.COMPLETE:
            duration_ms = (time.time() - start_time) * 1000
            usage = decoder.usage
            logger.info(
                "Chat stream completed",
                extra={"extra_fields": {
                    "model": model,
                    "prompt_tokens": usage.input_tokens if usage else 0,
                    "completion_tokens": usage.output_tokens if usage else 0,
                    "content_length": len(decoder.full_content),
                    "deltas": decoder.delta_count,
                    "duration_ms": round(duration_ms, 2),
                }}
            )
        return decoder.state
