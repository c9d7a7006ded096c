"""
System Prompt Provider - supplies the global default system prompt.

A session's own system prompt always takes priority; this provider only
answers "what is the current default" at message build time. Extensions
(e.g. discovered skills or capabilities) are appended to the base prompt.
"""

import logging
import threading
from typing import List, Optional

logger = logging.getLogger(__name__)


class SystemPromptProvider:
    """Holds a base system prompt plus any number of extensions."""

    def __init__(self, base_prompt: Optional[str] = None):
        self._base_prompt = base_prompt
        self._extensions: List[str] = []
        self._lock = threading.Lock()

    def extend(self, text: str) -> None:
        """Append an extension section to the default system prompt."""
        if not text or not text.strip():
            return
        with self._lock:
            self._extensions.append(text.strip())
        logger.info(f"System prompt extended: {len(text)} chars")

    def reset_extensions(self) -> None:
        with self._lock:
            self._extensions.clear()

    def current(self) -> Optional[str]:
        """
        Get the current default system prompt.

        Returns:
            Base prompt and extensions joined by blank lines, or None if empty
        """
        with self._lock:
            sections = [self._base_prompt] if self._base_prompt else []
            sections.extend(self._extensions)
        if not sections:
            return None
        return "\n\n".join(sections)
