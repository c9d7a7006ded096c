"""
Session Store - In-memory, thread-safe registry of chat sessions.

Locking is sharded: the store lock guards only the id -> slot mapping, and
each slot carries its own lock guarding that session's history. No lock is
held across a network call. Sessions live until explicitly deleted; there is
no persistence across restarts.
"""

import logging
import threading
import uuid
from typing import Dict, List, Optional

from ..models.chat import ImageData
from ..models.session import (
    AgentMessage, ImageUrl, ImageUrlPart, MessageContent, Session, TextPart, utc_now,
)

logger = logging.getLogger(__name__)


class _SessionSlot:
    __slots__ = ("session", "lock")

    def __init__(self, session: Session):
        self.session = session
        self.lock = threading.Lock()

    def touch(self) -> None:
        # updated_at never moves backwards, even if the wall clock does
        now = utc_now()
        if now > self.session.updated_at:
            self.session.updated_at = now


def _user_content(user_text: str, user_images: Optional[List[ImageData]]) -> MessageContent:
    if not user_images:
        return user_text
    parts = [TextPart(text=user_text)]
    for img in user_images:
        parts.append(ImageUrlPart(image_url=ImageUrl(url=img.data_url)))
    return parts


class SessionStore:
    """
    Concurrent-safe mapping from session id to conversation state.
    Reads return deep-copied snapshots, never live objects.
    """

    def __init__(self, default_model: str, max_turns: Optional[int] = None):
        """
        Initialize the store.

        Args:
            default_model: Model assigned to sessions created without one
            max_turns: Keep at most this many turns per session (None = unbounded)
        """
        if max_turns is not None and max_turns < 1:
            raise ValueError("max_turns must be a positive integer")
        self.default_model = default_model
        self.max_turns = max_turns
        self._slots: Dict[str, _SessionSlot] = {}
        self._lock = threading.Lock()

    def _slot(self, session_id: str) -> Optional[_SessionSlot]:
        with self._lock:
            return self._slots.get(session_id)

    def create(self, model: Optional[str] = None, system_prompt: Optional[str] = None) -> str:
        """
        Create a new empty session.

        Args:
            model: Model name (store default if not given)
            system_prompt: Session-level system prompt, overrides the global default

        Returns:
            str: The new session id
        """
        now = utc_now()
        session = Session(
            id=str(uuid.uuid4()),
            model=model or self.default_model,
            system_prompt=system_prompt,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._slots[session.id] = _SessionSlot(session)
        logger.info(f"Session created: {session.id} (model={session.model})")
        return session.id

    def get(self, session_id: str) -> Optional[Session]:
        """Get a snapshot of a session, or None if it does not exist."""
        slot = self._slot(session_id)
        if slot is None:
            return None
        with slot.lock:
            return slot.session.model_copy(deep=True)

    def get_messages(self, session_id: str) -> Optional[List[AgentMessage]]:
        snapshot = self.get(session_id)
        return snapshot.messages if snapshot else None

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._slots.pop(session_id, None)
        if removed is not None:
            logger.info(f"Session deleted: {session_id}")
        return removed is not None

    def list(self) -> List[Session]:
        """Snapshots of all sessions, oldest first."""
        with self._lock:
            slots = list(self._slots.values())
        snapshots = []
        for slot in slots:
            with slot.lock:
                snapshots.append(slot.session.model_copy(deep=True))
        snapshots.sort(key=lambda s: s.created_at)
        return snapshots

    def clear_messages(self, session_id: str) -> bool:
        """
        Drop a session's history while keeping its metadata.

        Returns:
            bool: False if the session does not exist
        """
        slot = self._slot(session_id)
        if slot is None:
            return False
        with slot.lock:
            slot.session.messages.clear()
            slot.touch()
        logger.info(f"Session messages cleared: {session_id}")
        return True

    def append_turn(
        self,
        session_id: str,
        user_text: str,
        user_images: Optional[List[ImageData]],
        assistant_text: str,
    ) -> bool:
        """
        Commit one user + assistant turn to a session's history.

        Both messages are appended under a single acquisition of the session
        lock, so concurrent turns never interleave inside one another.
        An unknown session id is not an error: nothing is stored.

        Args:
            session_id: Target session
            user_text: The user's message text
            user_images: Images sent with the user message (stored as image parts)
            assistant_text: Full assistant reply

        Returns:
            bool: True if the turn was stored, False if the session does not exist
        """
        slot = self._slot(session_id)
        if slot is None:
            logger.info(f"Turn not stored, session {session_id} does not exist")
            return False

        user_message = AgentMessage(role="user", content=_user_content(user_text, user_images))
        assistant_message = AgentMessage(role="assistant", content=assistant_text)

        with slot.lock:
            messages = slot.session.messages
            messages.append(user_message)
            messages.append(assistant_message)
            if self.max_turns is not None:
                overflow = len(messages) - self.max_turns * 2
                if overflow > 0:
                    del messages[:overflow]
            slot.touch()
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def __contains__(self, session_id: str) -> bool:
        return self._slot(session_id) is not None
