"""
Chat Models - Requests, results, generation settings and wire response schemas.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError, ValidatorFunctionWrapHandler, field_validator


class ImageData(BaseModel):
    """Inline image supplied with a user message."""
    data: str  # base64-encoded bytes
    media_type: str  # image/png, image/jpeg, ...

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


class ChatRequest(BaseModel):
    """A single user turn submitted to the engine."""
    session_id: Optional[str] = None  # omit for a stateless exchange
    message: str
    model: Optional[str] = None
    images: Optional[List[ImageData]] = None
    stream: bool = False


class TokenUsage(BaseModel):
    """Token accounting reported by the endpoint."""
    input_tokens: int = 0
    output_tokens: int = 0


class ChatResult(BaseModel):
    """
    Outcome of a non-streaming exchange.

    API errors (non-2xx) come back with success=False and the status code and
    body in `error`; they are never raised.
    """
    content: str = ""
    model: str
    usage: Optional[TokenUsage] = None
    success: bool
    error: Optional[str] = None


class FunctionDefinition(BaseModel):
    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ToolDefinition(BaseModel):
    """Tool schema forwarded to the endpoint. Tools are never executed here."""
    type: str = "function"
    function: FunctionDefinition


class GenerationConfig(BaseModel):
    """Sampling parameters sent with every request."""
    temperature: Optional[float] = 0.7
    max_tokens: Optional[int] = 4096
    top_p: Optional[float] = None
    tools: List[ToolDefinition] = Field(default_factory=list)
    tool_choice: Optional[Any] = None
    stream_include_usage: bool = False


# --- Wire response schemas -------------------------------------------------
# Every field is optional: a missing field is an explicit "nothing here",
# not a parse failure.


class UsageCounters(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    def to_token_usage(self) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.prompt_tokens or 0,
            output_tokens=self.completion_tokens or 0,
        )


class ResponseMessage(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class ResponseChoice(BaseModel):
    index: Optional[int] = None
    message: ResponseMessage = Field(default_factory=ResponseMessage)
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """Non-streaming chat completion body."""
    model: Optional[str] = None
    choices: List[ResponseChoice] = Field(default_factory=list)
    usage: Optional[UsageCounters] = None

    @property
    def first_content(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


# Only the delta content is read from a stream chunk; the other fields
# accept any value.


class StreamDelta(BaseModel):
    role: Any = None
    content: Optional[str] = None


class StreamChoice(BaseModel):
    index: Any = None
    delta: StreamDelta = Field(default_factory=StreamDelta)
    finish_reason: Any = None


class StreamChunk(BaseModel):
    """One `data:` payload of a streamed chat completion."""
    choices: List[StreamChoice] = Field(default_factory=list)
    usage: Optional[UsageCounters] = None

    @field_validator("usage", mode="wrap")
    @classmethod
    def _drop_bad_usage(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Optional[UsageCounters]:
        # An odd usage block must not cost the chunk its delta
        try:
            return handler(value)
        except ValidationError:
            return None

    @property
    def delta_content(self) -> Optional[str]:
        if not self.choices:
            return None
        return self.choices[0].delta.content
