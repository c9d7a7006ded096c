"""
Error taxonomy for the chat engine.

Only configuration and transport failures are raised. Unsuccessful API
responses are returned as data (``ChatResult.success == False``), malformed
stream payloads are skipped inside the decoder, and unknown session ids
produce ``None``/``False`` results.
"""


class AgentChatError(Exception):
    """Base class for errors raised by the chat engine."""


class ConfigError(AgentChatError):
    """Missing or invalid endpoint configuration (base URL, API key)."""


class TransportError(AgentChatError):
    """Connection failure, timeout, or an undecodable response body."""
