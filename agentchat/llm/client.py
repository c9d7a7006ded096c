"""
Chat Completions Client - HTTP access to an OpenAI-compatible endpoint.
Builds request payloads and performs plain or streaming POSTs with httpx.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..core.errors import ConfigError
from ..core.logging_config import clip, scrub_payload
from ..models.chat import GenerationConfig
from .base import LLMMessage

logger = logging.getLogger(__name__)


class ChatCompletionsClient:
    """
    Client for `POST {base_url}/v1/chat/completions`.

    One httpx.AsyncClient is opened per exchange. Proxies from the
    environment are ignored since the endpoint is usually a local gateway.
    """

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        connect_timeout: float = 30.0,
        request_timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Endpoint root, e.g. "http://127.0.0.1:8999"
            api_key: Bearer credential
            connect_timeout: Connection establishment timeout in seconds
            request_timeout: Overall request timeout in seconds
            transport: Optional httpx transport (e.g. httpx.MockTransport)

        Raises:
            ConfigError: If base_url or api_key is missing
        """
        if not base_url:
            raise ConfigError("Chat endpoint base URL is not configured")
        if not api_key:
            raise ConfigError("Chat endpoint API key is not configured")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.connect_timeout = connect_timeout
        self.request_timeout = request_timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.request_timeout, connect=self.connect_timeout),
            transport=self._transport,
            trust_env=False,
        )

    def build_payload(
        self,
        model: str,
        messages: List[LLMMessage],
        config: GenerationConfig,
        stream: bool,
    ) -> Dict[str, Any]:
        """Build the request body. Unset optional fields are omitted."""
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "stream": stream,
        }
        if config.temperature is not None:
            payload["temperature"] = config.temperature
        if config.max_tokens is not None:
            payload["max_tokens"] = config.max_tokens
        if config.top_p is not None:
            payload["top_p"] = config.top_p
        if config.tools:
            payload["tools"] = [t.model_dump() for t in config.tools]
        if config.tool_choice is not None:
            payload["tool_choice"] = config.tool_choice
        if stream and config.stream_include_usage:
            payload["stream_options"] = {"include_usage": True}
        return payload

    def _log_request(self, payload: Dict[str, Any]) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        body = json.dumps(scrub_payload(payload), ensure_ascii=False)
        logger.debug(
            f"Chat request starting: model={payload['model']}, stream={payload['stream']}, "
            f"{len(payload['messages'])} messages, body={clip(body, limit=2000)}"
        )

    async def post(self, payload: Dict[str, Any]) -> httpx.Response:
        """
        Perform a non-streaming exchange and return the fully read response.

        Raises:
            httpx.HTTPError: On connection failure or timeout
            asyncio.TimeoutError: If the whole exchange exceeds request_timeout
        """
        self._log_request(payload)

        async def _send() -> httpx.Response:
            async with self._http_client() as client:
                resp = await client.post(self.endpoint, json=payload, headers=self._get_headers())
                await resp.aread()
                return resp

        resp = await asyncio.wait_for(_send(), timeout=self.request_timeout)
        logger.debug(f"Chat response status: {resp.status_code}, response: {clip(resp.text)}")
        return resp

    @asynccontextmanager
    async def stream(self, payload: Dict[str, Any]) -> AsyncIterator[httpx.Response]:
        """
        Open a streaming exchange. The response body is not read; iterate
        `response.aiter_bytes()` inside the context.

        Raises:
            httpx.HTTPError: On connection failure or timeout
        """
        self._log_request(payload)
        async with self._http_client() as client:
            async with client.stream(
                "POST", self.endpoint, json=payload, headers=self._get_headers()
            ) as response:
                logger.debug(f"Chat stream opened: status={response.status_code}")
                yield response
