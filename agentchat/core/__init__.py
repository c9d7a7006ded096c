"""Core module - errors, logging and the system prompt provider."""

from .errors import AgentChatError, ConfigError, TransportError
from .prompt import SystemPromptProvider

__all__ = ['AgentChatError', 'ConfigError', 'TransportError', 'SystemPromptProvider']
