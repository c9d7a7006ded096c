"""Models module."""

from .session import (
    ImageUrl, TextPart, ImageUrlPart, ContentPart, MessageContent, as_text,
    FunctionCall, ToolCall, AgentMessage, Session,
)
from .chat import (
    ImageData, ChatRequest, TokenUsage, ChatResult, FunctionDefinition, ToolDefinition,
    GenerationConfig, ChatCompletionResponse, StreamChunk,
)
from .events import TextDeltaEvent, DoneEvent, ErrorEvent, StreamEvent, is_terminal

__all__ = [
    'ImageUrl', 'TextPart', 'ImageUrlPart', 'ContentPart', 'MessageContent', 'as_text',
    'FunctionCall', 'ToolCall', 'AgentMessage', 'Session',
    'ImageData', 'ChatRequest', 'TokenUsage', 'ChatResult', 'FunctionDefinition',
    'ToolDefinition', 'GenerationConfig', 'ChatCompletionResponse', 'StreamChunk',
    'TextDeltaEvent', 'DoneEvent', 'ErrorEvent', 'StreamEvent', 'is_terminal',
]
