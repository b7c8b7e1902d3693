"""
In-memory session store for conversation state.

Each session holds an AssistantState dict with the form and message
history. Sessions are created on demand and cleaned up after an idle
timeout; nothing is persisted.

A session runs at most one turn at a time. The turn lock and the handle
of the in-flight turn task live on the Session so the API can refuse a
second concurrent turn and cancel the running one.
"""

import asyncio
import threading
import time
import uuid
from typing import Any

from smartform.agent.graph import create_initial_state
from smartform.agent.state import AssistantState
from smartform.core.language import BASE_LOCALE, Locale
from smartform.core.schema import FormSchema


# Default session timeout: 30 minutes
DEFAULT_SESSION_TIMEOUT_SECONDS = 30 * 60


class Session:
    """A single conversation session.

    Holds the LangGraph state dict that persists across conversation turns.
    """

    def __init__(self, state: AssistantState):
        self.state: AssistantState = state
        self.created_at: float = time.time()
        self.last_accessed_at: float = time.time()
        self.turn_lock = asyncio.Lock()
        self.inflight: asyncio.Task | None = None

    def touch(self) -> None:
        """Update the last accessed timestamp."""
        self.last_accessed_at = time.time()

    def is_expired(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS) -> bool:
        """Check if the session has expired."""
        return (time.time() - self.last_accessed_at) > timeout_seconds

    @property
    def busy(self) -> bool:
        return self.turn_lock.locked()

    def cancel_inflight(self) -> bool:
        """Cancel the running turn, if any. Returns True if one was cancelled."""
        task = self.inflight
        if task is None or task.done():
            return False
        task.cancel()
        return True


class SessionStore:
    """In-memory store for conversation sessions.

    Thread-safe for basic use. Sessions are not shared across processes.
    """

    def __init__(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS):
        self._sessions: dict[str, Session] = {}
        self._timeout_seconds = timeout_seconds
        self._lock = threading.RLock()

    def create_session(
        self,
        schema: FormSchema,
        config: Any,
        llm_client: Any,
        session_id: str | None = None,
        locale: Locale = BASE_LOCALE,
    ) -> tuple[str, Session]:
        """Create a new session with a fresh form.

        Expired idle sessions are pruned first, so abandoned sessions do
        not accumulate.

        Args:
            schema: The form being filled.
            config: The AssistantConfig for the pipeline.
            llm_client: The LLMClient the session uses.
            session_id: Optional custom ID. Auto-generated if not provided.
            locale: Locale of the welcome message.

        Returns:
            Tuple of (session_id, Session).
        """
        if session_id is None:
            session_id = str(uuid.uuid4())

        state = create_initial_state(schema, config, llm_client, locale=locale)
        session = Session(state)

        self.cleanup_expired()
        with self._lock:
            self._sessions[session_id] = session
        return session_id, session

    def get_session(self, session_id: str) -> Session | None:
        """Retrieve a session by ID.

        Returns None if the session doesn't exist or has expired.
        Automatically cleans up expired sessions.
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return None

        if session.is_expired(self._timeout_seconds) and not session.busy:
            with self._lock:
                if session_id in self._sessions:
                    del self._sessions[session_id]
            return None

        session.touch()
        return session

    def save_session(self, session_id: str, state: AssistantState) -> bool:
        """Store updated state for an existing session."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            session.state = state
            session.touch()
            return True

    def delete_session(self, session_id: str) -> bool:
        """Delete a session, cancelling its running turn. Returns True if it existed."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.cancel_inflight()
        return True

    def cleanup_expired(self) -> int:
        """Remove all expired idle sessions. Returns the count of removed sessions."""
        with self._lock:
            expired = [
                sid for sid, session in self._sessions.items()
                if session.is_expired(self._timeout_seconds) and not session.busy
            ]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def count(self) -> int:
        """Return the number of active sessions."""
        with self._lock:
            return len(self._sessions)

    def list_session_ids(self) -> list[str]:
        """Return all active session IDs."""
        with self._lock:
            return list(self._sessions.keys())
