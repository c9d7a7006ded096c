"""
Wire message types for the OpenAI-compatible chat completions protocol.
Supports multimodal messages (text + images) and tool-call fields.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..models.chat import ImageData
from ..models.session import AgentMessage


@dataclass
class LLMMessage:
    """
    Represents a message in a chat completions request.
    Content is either plain text or a list of content blocks.
    """
    role: str  # "system", "user", "assistant", "tool"
    content: Union[str, List[Dict[str, Any]]]
    tool_calls: Optional[List[Dict[str, Any]]] = None
    tool_call_id: Optional[str] = None

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        """Create a text-only message."""
        return LLMMessage(role=role, content=text)

    @staticmethod
    def multimodal(role: str, text: str, images: List[ImageData]) -> "LLMMessage":
        """
        Create a multimodal message: the text block first, then one
        image_url block per image as a base64 data URL.

        Args:
            role: Message role
            text: Text content
            images: Inline images with base64 'data' and 'media_type'
        """
        content_parts: List[Dict[str, Any]] = [{"type": "text", "text": text}]
        for img in images:
            content_parts.append({
                "type": "image_url",
                "image_url": {"url": img.data_url}
            })
        return LLMMessage(role=role, content=content_parts)

    @staticmethod
    def from_history(message: AgentMessage) -> "LLMMessage":
        """Transcode a stored history message, keeping role, content shape and tool fields."""
        if isinstance(message.content, str):
            content: Union[str, List[Dict[str, Any]]] = message.content
        else:
            content = [part.model_dump(exclude_none=True) for part in message.content]

        tool_calls = None
        if message.tool_calls is not None:
            tool_calls = [call.model_dump() for call in message.tool_calls]

        return LLMMessage(
            role=message.role,
            content=content,
            tool_calls=tool_calls,
            tool_call_id=message.tool_call_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the request body, omitting absent tool fields."""
        data: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls is not None:
            data["tool_calls"] = self.tool_calls
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        return data
