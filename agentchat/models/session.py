"""
Session Models - Conversation state kept per chat session.

Message content mirrors the OpenAI chat wire shape: either a plain string or
a list of typed parts (text / image_url), so history transcodes 1:1.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ImageUrl(BaseModel):
    """Image reference, usually a base64 data URL."""
    url: str
    detail: Optional[str] = None  # low, high, auto


class TextPart(BaseModel):
    """Text content part."""
    type: Literal["text"] = "text"
    text: str


class ImageUrlPart(BaseModel):
    """Image content part."""
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Annotated[Union[TextPart, ImageUrlPart], Field(discriminator="type")]

# Plain text or an ordered list of parts
MessageContent = Union[str, List[ContentPart]]


def as_text(content: MessageContent) -> str:
    """
    Get the textual view of message content.

    Plain text is returned unchanged. For multipart content the text parts
    are joined with newlines and image parts are ignored.
    """
    if isinstance(content, str):
        return content
    return "\n".join(part.text for part in content if isinstance(part, TextPart))


class FunctionCall(BaseModel):
    """Function invocation requested by the model."""
    name: str
    arguments: str  # JSON-encoded arguments


class ToolCall(BaseModel):
    """Tool call attached to an assistant message."""
    id: str
    type: str = "function"
    function: FunctionCall


class AgentMessage(BaseModel):
    """A single message in a session's history."""
    role: Literal["user", "assistant", "system", "tool"]
    content: MessageContent
    timestamp: datetime = Field(default_factory=utc_now)
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None

    def as_text(self) -> str:
        return as_text(self.content)


class Session(BaseModel):
    """Chat session with its full message history."""
    id: str
    model: str
    messages: List[AgentMessage] = Field(default_factory=list)
    system_prompt: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
