"""
Chat Engine - the conversation-aware facade exposed to callers.
Coordinates the session store, message builder and transport.
"""

import asyncio
import logging
from typing import Any, List, Optional, Tuple

from ..core.logging_config import ContextLogger
from ..core.prompt import SystemPromptProvider
from ..llm.channel import EventChannel, EventSink
from ..llm.client import ChatCompletionsClient
from ..llm.message_builder import MessageBuilder
from ..llm.stream_decoder import DecoderState
from ..llm.transport import ChatTransport
from ..models.chat import ChatRequest, ChatResult, GenerationConfig
from ..models.session import AgentMessage, Session
from ..storage import SessionStore

logger = logging.getLogger(__name__)


def _log_stream_task_failure(task: "asyncio.Task[DecoderState]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Stream task crashed: {exc!r}", exc_info=exc)


class ChatEngine:
    """
    Conversation-aware chat engine.

    Sessions are optional: a request naming an unknown session id runs as a
    stateless single exchange and nothing is created implicitly.
    """

    def __init__(
        self,
        client: ChatCompletionsClient,
        default_model: str,
        generation: Optional[GenerationConfig] = None,
        prompt_provider: Optional[SystemPromptProvider] = None,
        store: Optional[SessionStore] = None,
        channel_capacity: int = 100,
        log_calls: bool = True,
    ):
        """
        Initialize the engine.

        Args:
            client: Configured chat completions client
            default_model: Model used when neither request nor session names one
            generation: Sampling parameters for every request
            prompt_provider: Source of the global default system prompt
            store: Session store (a fresh in-memory store if not given)
            channel_capacity: Buffer size of channels made by open_stream
            log_calls: Log completed calls with token usage
        """
        self.default_model = default_model
        self.generation = generation or GenerationConfig()
        self.prompt_provider = prompt_provider or SystemPromptProvider()
        self.store = store if store is not None else SessionStore(default_model)
        self.channel_capacity = channel_capacity
        self.transport = ChatTransport(
            client, self.store, MessageBuilder(self.prompt_provider), log_calls=log_calls
        )

    @classmethod
    def from_settings(cls, config: Any) -> "ChatEngine":
        """
        Build an engine from a Settings object.

        Raises:
            ConfigError: If the endpoint base URL or API key is missing
        """
        client = ChatCompletionsClient(
            base_url=config.llm_base_url,
            api_key=config.llm_api_key,
            connect_timeout=config.llm_connect_timeout,
            request_timeout=config.llm_request_timeout,
        )
        generation = GenerationConfig(
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            top_p=config.top_p,
            stream_include_usage=config.stream_include_usage,
        )
        return cls(
            client=client,
            default_model=config.llm_model,
            generation=generation,
            prompt_provider=SystemPromptProvider(config.system_prompt),
            store=SessionStore(config.llm_model, max_turns=config.max_history_turns),
            channel_capacity=config.stream_channel_capacity,
            log_calls=config.log_llm_calls,
        )

    @property
    def base_url(self) -> str:
        return self.transport.client.base_url

    # Session management

    def create_session(self, model: Optional[str] = None, system_prompt: Optional[str] = None) -> str:
        return self.store.create(model, system_prompt)

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.store.get(session_id)

    def delete_session(self, session_id: str) -> bool:
        return self.store.delete(session_id)

    def list_sessions(self) -> List[Session]:
        return self.store.list()

    def clear_session_messages(self, session_id: str) -> bool:
        return self.store.clear_messages(session_id)

    def get_session_messages(self, session_id: str) -> Optional[List[AgentMessage]]:
        return self.store.get_messages(session_id)

    # Chat

    def _resolve_model(self, request: ChatRequest) -> str:
        if request.model:
            return request.model
        if request.session_id:
            session = self.store.get(request.session_id)
            if session is not None:
                return session.model
        return self.default_model

    def _log(self, request: ChatRequest) -> ContextLogger:
        return ContextLogger(logger, {"session_id": request.session_id})

    async def chat(self, request: ChatRequest) -> ChatResult:
        """
        Send one message and wait for the full reply.

        Returns:
            ChatResult: check `success`; API errors are not raised

        Raises:
            TransportError: On connection failure, timeout or an undecodable body
        """
        model = self._resolve_model(request)
        log = self._log(request).bind(model=model)
        log.info(
            f"Chat request: model={model}, session={request.session_id}, "
            f"images={len(request.images or [])}"
        )
        result = await self.transport.send(
            request.session_id, request.message, request.images, model, self.generation
        )
        log.info(f"Chat finished: success={result.success}, content_len={len(result.content)}")
        return result

    async def chat_stream(self, request: ChatRequest, sink: EventSink) -> DecoderState:
        """
        Send one message and stream the reply to `sink` as events.

        Returns:
            DecoderState: terminal state of the stream
        """
        model = self._resolve_model(request)
        log = self._log(request).bind(model=model)
        log.info(
            f"Chat stream request: model={model}, session={request.session_id}, "
            f"images={len(request.images or [])}"
        )
        state = await self.transport.send_stream(
            request.session_id, request.message, request.images, model, self.generation, sink
        )
        log.info(f"Chat stream finished: state={state.value}")
        return state

    def open_stream(self, request: ChatRequest) -> Tuple[EventChannel, "asyncio.Task[DecoderState]"]:
        """
        Start chat_stream as an independent task.

        Returns:
            (channel, task): iterate the channel with `async for`; close it to
            abandon the stream. The channel is closed when the task ends.
        """
        channel = EventChannel(capacity=self.channel_capacity)
        task = asyncio.create_task(self.chat_stream(request, channel))
        task.add_done_callback(lambda _: channel.close())
        task.add_done_callback(_log_stream_task_failure)
        return channel, task
