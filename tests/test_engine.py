"""
Tests for the chat engine facade.
Covers the end-to-end conversation scenarios over a mocked endpoint.
"""

import pytest

from agentchat.agents import ChatEngine
from agentchat.config import Settings
from agentchat.core import ConfigError
from agentchat.llm import DecoderState
from agentchat.models import ChatRequest, DoneEvent, ImageData, TextDeltaEvent


class TestSessionOperations:
    """Tests for the session management surface."""

    def test_create_and_get(self, engine):
        sid = engine.create_session(system_prompt="sys")
        session = engine.get_session(sid)
        assert session.model == "test-model"
        assert session.system_prompt == "sys"
        assert [s.id for s in engine.list_sessions()] == [sid]

    def test_unknown_ids_are_noops(self, engine):
        assert engine.delete_session("unknown") is False
        assert engine.clear_session_messages("unknown") is False
        assert engine.get_session("unknown") is None
        assert engine.get_session_messages("unknown") is None
        assert engine.list_sessions() == []


class TestChat:
    """Tests for non-streaming chat."""

    @pytest.mark.asyncio
    async def test_api_error_leaves_history_untouched(self, engine, endpoint):
        sid = engine.create_session()
        endpoint.reply_text("oops", status_code=500)

        result = await engine.chat(ChatRequest(session_id=sid, message="hi"))

        assert result.success is False
        assert "500" in result.error and "oops" in result.error
        assert engine.get_session_messages(sid) == []

    @pytest.mark.asyncio
    async def test_two_turns_accumulate_history(self, engine, endpoint):
        sid = engine.create_session(system_prompt="be nice")
        endpoint.reply_completion("first answer")
        endpoint.reply_completion("second answer")

        await engine.chat(ChatRequest(session_id=sid, message="first question"))
        await engine.chat(ChatRequest(session_id=sid, message="second question"))

        messages = engine.get_session_messages(sid)
        assert [(m.role, m.as_text()) for m in messages] == [
            ("user", "first question"),
            ("assistant", "first answer"),
            ("user", "second question"),
            ("assistant", "second answer"),
        ]

        first, second = endpoint.requests
        assert first["messages"] == [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "first question"},
        ]
        assert second["messages"] == [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "first question"},
            {"role": "assistant", "content": "first answer"},
            {"role": "user", "content": "second question"},
        ]

    @pytest.mark.asyncio
    async def test_model_resolution(self, engine, endpoint):
        sid = engine.create_session(model="session-model")
        endpoint.reply_completion("a")
        endpoint.reply_completion("b")
        endpoint.reply_completion("c")

        await engine.chat(ChatRequest(session_id=sid, message="x", model="explicit"))
        await engine.chat(ChatRequest(session_id=sid, message="y"))
        await engine.chat(ChatRequest(message="z"))

        assert [r["model"] for r in endpoint.requests] == ["explicit", "session-model", "test-model"]

    @pytest.mark.asyncio
    async def test_global_prompt_extension(self, engine, endpoint):
        engine.prompt_provider.extend("You can search the web.")
        endpoint.reply_completion("ok")

        await engine.chat(ChatRequest(message="hi"))

        assert endpoint.requests[0]["messages"][0] == {
            "role": "system", "content": "You can search the web."
        }

    @pytest.mark.asyncio
    async def test_generation_parameters_sent(self, engine, endpoint):
        endpoint.reply_completion("ok")
        await engine.chat(ChatRequest(message="hi"))
        assert endpoint.requests[0]["temperature"] == 0.7
        assert endpoint.requests[0]["max_tokens"] == 4096


class TestChatStream:
    """Tests for streamed chat."""

    @pytest.mark.asyncio
    async def test_stream_with_sentinel(self, engine, endpoint, sink, sse_encode, delta_chunk):
        sid = engine.create_session()
        endpoint.reply_stream([sse_encode(delta_chunk("Hi")), sse_encode("[DONE]")])

        state = await engine.chat_stream(ChatRequest(session_id=sid, message="Hello"), sink)

        assert state == DecoderState.COMPLETE
        assert sink.events == [TextDeltaEvent(text="Hi"), DoneEvent()]
        messages = engine.get_session_messages(sid)
        assert [m.role for m in messages[-2:]] == ["user", "assistant"]
        assert messages[-1].as_text() == "Hi"

    @pytest.mark.asyncio
    async def test_stream_closed_without_sentinel(self, engine, endpoint, sink, sse_encode, delta_chunk):
        sid = engine.create_session()
        endpoint.reply_stream([sse_encode(delta_chunk("A"))])

        await engine.chat_stream(ChatRequest(session_id=sid, message="Hello"), sink)

        assert sink.events == [TextDeltaEvent(text="A"), DoneEvent()]
        messages = engine.get_session_messages(sid)
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[-1].as_text() == "A"

    @pytest.mark.asyncio
    async def test_stream_without_session(self, engine, endpoint, sink, sse_encode, delta_chunk):
        endpoint.reply_stream([sse_encode(delta_chunk("x")), sse_encode("[DONE]")])

        await engine.chat_stream(ChatRequest(session_id="ghost", message="Hello"), sink)

        assert sink.types == ["text_delta", "done"]
        assert engine.list_sessions() == []

    @pytest.mark.asyncio
    async def test_stream_with_images(self, engine, endpoint, sink, sse_encode, delta_chunk):
        sid = engine.create_session()
        endpoint.reply_stream([sse_encode(delta_chunk("a chart")), sse_encode("[DONE]")])
        images = [ImageData(data="QUJD", media_type="image/png")]

        await engine.chat_stream(ChatRequest(session_id=sid, message="describe", images=images), sink)

        sent_user = endpoint.requests[0]["messages"][-1]
        assert len(sent_user["content"]) == 2
        stored_user = engine.get_session_messages(sid)[0]
        assert stored_user.as_text() == "describe"
        assert stored_user.content[1].image_url.url == "data:image/png;base64,QUJD"

    @pytest.mark.asyncio
    async def test_open_stream_task_and_channel(self, engine, endpoint, sse_encode, delta_chunk):
        sid = engine.create_session()
        endpoint.reply_stream([
            sse_encode(delta_chunk("one ")),
            sse_encode(delta_chunk("two")),
            sse_encode("[DONE]"),
        ])

        channel, task = engine.open_stream(ChatRequest(session_id=sid, message="count"))
        events = [event async for event in channel]

        assert [e.type for e in events] == ["text_delta", "text_delta", "done"]
        assert await task == DecoderState.COMPLETE
        assert engine.get_session_messages(sid)[-1].as_text() == "one two"


class TestFromSettings:

    def test_missing_endpoint_fails_fast(self):
        config = Settings(llm_base_url=None, llm_api_key="k", log_file_enabled=False)
        with pytest.raises(ConfigError):
            ChatEngine.from_settings(config)

    def test_missing_key_fails_fast(self):
        config = Settings(llm_base_url="http://x", llm_api_key=None, log_file_enabled=False)
        with pytest.raises(ConfigError):
            ChatEngine.from_settings(config)

    def test_builds_from_settings(self):
        config = Settings(
            llm_base_url="http://127.0.0.1:8999",
            llm_api_key="k",
            llm_model="m1",
            system_prompt="base",
            max_history_turns=3,
            temperature=0.2,
        )
        engine = ChatEngine.from_settings(config)
        assert engine.base_url == "http://127.0.0.1:8999"
        assert engine.default_model == "m1"
        assert engine.store.max_turns == 3
        assert engine.generation.temperature == 0.2
        assert engine.prompt_provider.current() == "base"


class TestOpenStreamFailure:

    @pytest.mark.asyncio
    async def test_crashed_task_ends_iteration(self, engine):
        async def boom(*args, **kwargs):
            raise RuntimeError("boom")
        engine.transport.send_stream = boom

        channel, task = engine.open_stream(ChatRequest(message="hi"))
        events = [event async for event in channel]

        assert events == []
        with pytest.raises(RuntimeError):
            await task
