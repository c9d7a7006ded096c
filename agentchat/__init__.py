"""AgentChat - conversation-aware chat engine for OpenAI-compatible endpoints."""

__version__ = "1.0.0"
