"""
Stream Events - Application-level events produced while decoding a stream.

Zero or more text_delta events are followed by exactly one terminal event
(done or error).
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from .chat import TokenUsage


class TextDeltaEvent(BaseModel):
    """Incremental piece of assistant text (never the cumulative text)."""
    type: Literal["text_delta"] = "text_delta"
    text: str


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"
    usage: Optional[TokenUsage] = None


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


StreamEvent = Annotated[Union[TextDeltaEvent, DoneEvent, ErrorEvent], Field(discriminator="type")]


def is_terminal(event: BaseModel) -> bool:
    """True for the events that end a stream."""
    return isinstance(event, (DoneEvent, ErrorEvent))
