"""LLM module - wire protocol client, message assembly and stream decoding."""

from .base import LLMMessage
from .channel import EventChannel, EventSink
from .client import ChatCompletionsClient
from .message_builder import MessageBuilder
from .stream_decoder import DecoderState, EventStreamBuffer, StreamDecoder
from .transport import ChatTransport

__all__ = [
    'LLMMessage',
    'EventChannel',
    'EventSink',
    'ChatCompletionsClient',
    'MessageBuilder',
    'DecoderState',
    'EventStreamBuffer',
    'StreamDecoder',
    'ChatTransport',
]
