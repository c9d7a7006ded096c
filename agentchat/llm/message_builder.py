"""
Message Builder - assembles the request message sequence for one turn.

Order: optional system prompt, every prior history message, the new user
message. Pure: the session snapshot is only read, never mutated.
"""

import logging
from typing import List, Optional

from ..core.prompt import SystemPromptProvider
from ..models.chat import ImageData
from ..models.session import Session
from .base import LLMMessage

logger = logging.getLogger(__name__)


class MessageBuilder:
    """Builds wire messages from a session snapshot and the new user input."""

    def __init__(self, prompt_provider: Optional[SystemPromptProvider] = None):
        self.prompt_provider = prompt_provider or SystemPromptProvider()

    def resolve_system_prompt(self, session: Optional[Session]) -> Optional[str]:
        """Session-level prompt wins over the global default, even when empty."""
        if session is not None and session.system_prompt is not None:
            return session.system_prompt
        return self.prompt_provider.current()

    def build(
        self,
        session: Optional[Session],
        user_text: str,
        images: Optional[List[ImageData]] = None,
    ) -> List[LLMMessage]:
        """
        Build the ordered message list for a chat completions request.

        Args:
            session: Snapshot of the session, or None for a stateless exchange
            user_text: The new user message
            images: Optional inline images attached to the user message

        Returns:
            List[LLMMessage]: system (if any), history, then the user message
        """
        messages: List[LLMMessage] = []

        system_prompt = self.resolve_system_prompt(session)
        if system_prompt:
            messages.append(LLMMessage.text("system", system_prompt))

        if session is not None:
            messages.extend(LLMMessage.from_history(m) for m in session.messages)

        if images:
            messages.append(LLMMessage.multimodal("user", user_text, images))
        else:
            messages.append(LLMMessage.text("user", user_text))

        if logger.isEnabledFor(logging.DEBUG):
            for i, msg in enumerate(messages):
                if isinstance(msg.content, str):
                    content_type = "text"
                elif any(p.get("type") == "image_url" for p in msg.content):
                    content_type = "parts_with_image"
                else:
                    content_type = "parts_text_only"
                logger.debug(f"Message[{i}]: role={msg.role}, content_type={content_type}")

        return messages
