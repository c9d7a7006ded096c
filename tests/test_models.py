"""
Unit tests for the data models.
Tests content text views, wire schemas and stream events.
"""

from agentchat.models import (
    AgentMessage, ChatCompletionResponse, DoneEvent, ErrorEvent, ImageData, ImageUrl,
    ImageUrlPart, StreamChunk, TextDeltaEvent, TextPart, TokenUsage, as_text, is_terminal,
)


class TestAsText:
    """Tests for the textual view of message content."""

    def test_plain_text_is_identity(self):
        assert as_text("hello") == "hello"

    def test_parts_join_text_with_newlines(self):
        content = [TextPart(text="first"), TextPart(text="second")]
        assert as_text(content) == "first\nsecond"

    def test_image_parts_are_ignored(self):
        image = ImageUrlPart(image_url=ImageUrl(url="data:image/png;base64,AAA"))
        content = [image, TextPart(text="a"), image, TextPart(text="b"), image]
        assert as_text(content) == "a\nb"

    def test_only_images_gives_empty_text(self):
        content = [ImageUrlPart(image_url=ImageUrl(url="u"))]
        assert as_text(content) == ""

    def test_message_parses_wire_parts(self):
        msg = AgentMessage.model_validate({
            "role": "user",
            "content": [
                {"type": "text", "text": "look"},
                {"type": "image_url", "image_url": {"url": "data:image/png;base64,xx"}},
            ],
        })
        assert isinstance(msg.content[1], ImageUrlPart)
        assert msg.as_text() == "look"


class TestImageData:

    def test_data_url(self):
        img = ImageData(data="abc123", media_type="image/jpeg")
        assert img.data_url == "data:image/jpeg;base64,abc123"


class TestWireSchemas:
    """Tests for the partial response schemas."""

    def test_completion_first_content(self):
        body = ChatCompletionResponse.model_validate({
            "model": "m",
            "choices": [{"message": {"content": "Hi"}}, {"message": {"content": "other"}}],
            "usage": {"prompt_tokens": 3, "completion_tokens": 1},
        })
        assert body.first_content == "Hi"
        assert body.usage.to_token_usage() == TokenUsage(input_tokens=3, output_tokens=1)

    def test_completion_without_choices(self):
        assert ChatCompletionResponse.model_validate({}).first_content == ""

    def test_stream_chunk_delta(self):
        chunk = StreamChunk.model_validate_json('{"choices":[{"delta":{"content":"x"}}]}')
        assert chunk.delta_content == "x"

    def test_stream_chunk_missing_fields(self):
        assert StreamChunk.model_validate_json('{"choices":[{"delta":{}}]}').delta_content is None
        assert StreamChunk.model_validate_json('{"choices":[]}').delta_content is None
        assert StreamChunk.model_validate_json('{}').delta_content is None


class TestStreamEvents:

    def test_serialized_type_tags(self):
        assert '"type":"text_delta"' in TextDeltaEvent(text="Hello").model_dump_json()
        assert '"type":"done"' in DoneEvent().model_dump_json()
        assert '"type":"error"' in ErrorEvent(message="Test error").model_dump_json()

    def test_terminal_events(self):
        assert is_terminal(DoneEvent())
        assert is_terminal(ErrorEvent(message="x"))
        assert not is_terminal(TextDeltaEvent(text="x"))
