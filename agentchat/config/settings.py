"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "AgentChat"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # Chat completions endpoint (OpenAI-compatible)
    llm_base_url: Optional[str] = None  # e.g. http://127.0.0.1:8999
    llm_api_key: Optional[str] = None
    llm_model: str = "claude-sonnet-4-20250514"
    llm_connect_timeout: float = 30.0  # seconds
    llm_request_timeout: float = 300.0  # seconds

    # Generation defaults
    system_prompt: Optional[str] = None
    temperature: Optional[float] = 0.7
    max_tokens: Optional[int] = 4096
    top_p: Optional[float] = None

    # Streaming
    stream_channel_capacity: int = 100
    stream_include_usage: bool = False  # ask the server for usage in the last chunk

    # Session history
    max_history_turns: Optional[int] = None  # unbounded if not set

    # CORS
    cors_origins: list[str] = [
        "http://localhost:1420",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/agentchat.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log all LLM calls with token usage

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
