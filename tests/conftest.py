"""
Shared test fixtures and configuration.
"""

import json
import os

import httpx
import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("LLM_BASE_URL", "http://llm.test")
os.environ.setdefault("LLM_API_KEY", "sk-test")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "false")

from agentchat.agents import ChatEngine  # noqa: E402
from agentchat.llm import ChatCompletionsClient  # noqa: E402
from agentchat.models import GenerationConfig  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


class RecordingSink:
    """Event sink that keeps every delivered event."""

    def __init__(self):
        self.events = []

    async def send(self, event) -> bool:
        self.events.append(event)
        return True

    @property
    def types(self):
        return [e.type for e in self.events]


class FakeEndpoint:
    """
    httpx.MockTransport handler standing in for the chat completions endpoint.
    Records every request body; replies with queued responses in order.
    """

    def __init__(self):
        self.requests = []
        self.last_headers = None
        self.last_url = None
        self._replies = []

    def reply_json(self, body, status_code=200):
        self._replies.append(lambda: httpx.Response(status_code, json=body))

    def reply_text(self, text, status_code):
        self._replies.append(lambda: httpx.Response(status_code, text=text))

    def reply_stream(self, chunks, status_code=200, error=None):
        """Stream the given byte chunks, optionally raising `error` afterwards."""
        async def body():
            for chunk in chunks:
                yield chunk
            if error is not None:
                raise error

        self._replies.append(lambda: httpx.Response(
            status_code, content=body(), headers={"content-type": "text/event-stream"}
        ))

    def reply_completion(self, content, model="test-model", prompt_tokens=10, completion_tokens=5):
        self.reply_json({
            "model": model,
            "choices": [{"message": {"role": "assistant", "content": content}}],
            "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
        })

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.last_headers = request.headers
        self.last_url = str(request.url)
        return self._replies.pop(0)()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def endpoint():
    return FakeEndpoint()


@pytest.fixture
def client(endpoint):
    return ChatCompletionsClient(
        base_url="http://llm.test",
        api_key="sk-test",
        transport=httpx.MockTransport(endpoint),
    )


@pytest.fixture
def engine(client):
    return ChatEngine(
        client=client,
        default_model="test-model",
        generation=GenerationConfig(temperature=0.7, max_tokens=4096),
    )


def sse(payload) -> bytes:
    """Encode one event block as the endpoint would send it."""
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n\n".encode("utf-8")


def delta(text) -> dict:
    return {"choices": [{"delta": {"content": text}}]}


@pytest.fixture
def sse_encode():
    return sse


@pytest.fixture
def delta_chunk():
    return delta
