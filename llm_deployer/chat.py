"""Chat session management."""

import logging
from typing import Dict, List, Optional, Tuple

from .errors import InvalidArgumentError, InvalidStateError, NotFoundError
from .gateway import InferenceGateway
from .models import MessageRole
from .state import ChatMessage, ChatSession, utcnow

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """
    Owns the session table and sequences calls to the inference gateway.

    Handles:
    - Session creation, lookup and ending
    - Appending user/assistant turns around each inference call
    - History snapshots and clearing

    One in-flight send_message per session is assumed; nothing here locks.
    """

    def __init__(self, gateway: InferenceGateway):
        self.gateway = gateway
        self._sessions: Dict[str, ChatSession] = {}

    def start_session(self, model_id: str) -> ChatSession:
        if not model_id or not model_id.strip():
            raise InvalidArgumentError("Model ID cannot be empty")

        session = ChatSession(model_id=model_id)
        self._sessions[session.id] = session
        logger.info(f"Started session {session.id} (model={model_id})")
        return session

    async def send_message(
        self,
        session_id: str,
        text: str,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Append the user turn, run inference and append the reply."""
        session = self.get_session(session_id)
        if not text or not text.strip():
            raise InvalidArgumentError("Message cannot be empty")

        session.history.append(ChatMessage(role=MessageRole.USER, content=text))
        reply = await self.gateway.infer(session.model_id, text, max_tokens)
        session.history.append(ChatMessage(role=MessageRole.ASSISTANT, content=reply))

        logger.debug(f"Session {session_id}: {len(session.history)} messages")
        return reply

    def get_session(self, session_id: str) -> ChatSession:
        """Active session by id."""
        session = self._lookup(session_id)
        if not session.is_active:
            raise InvalidStateError(f"Chat session {session_id} is not active")
        return session

    def get_history(self, session_id: str) -> Tuple[ChatMessage, ...]:
        """Read-only snapshot of an active session's messages."""
        return tuple(self.get_session(session_id).history)

    def clear_history(self, session_id: str) -> int:
        """Empty the history in place. Returns the number of messages removed."""
        session = self.get_session(session_id)
        count = len(session.history)
        session.history.clear()
        logger.info(f"Cleared {count} messages from session {session_id}")
        return count

    def end_session(self, session_id: str) -> ChatSession:
        """Mark a session inactive. Ending twice keeps the first end time."""
        session = self._lookup(session_id)
        if session.is_active:
            session.is_active = False
            session.ended_at = utcnow()
            logger.info(f"Ended session {session_id} ({len(session.history)} messages)")
        return session

    def list_sessions(self) -> List[ChatSession]:
        """Active sessions in creation order."""
        return [s for s in self._sessions.values() if s.is_active]

    @property
    def session_count(self) -> int:
        """Number of active sessions."""
        return len(self.list_sessions())

    def _lookup(self, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return session
