import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any

ROLE_USER = "user"
ROLE_AGENT = "agent"


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: Any
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}


class ChatSession:
    """Append-only message log for one chat view."""

    def __init__(self, session_id: str):
        self.id = session_id
        self.created_at = time.time()
        self._messages: list[ChatMessage] = []
        self._lock = threading.Lock()

    def append(self, message: ChatMessage) -> ChatMessage:
        with self._lock:
            self._messages.append(message)
        return message

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        with self._lock:
            return tuple(self._messages)


class SessionStore:
    def __init__(self, max_sessions: int = 200):
        self.max_sessions = max(1, max_sessions)
        self._sessions: OrderedDict[str, ChatSession] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> ChatSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
            return session

    def get_or_create(self, session_id: str | None = None) -> ChatSession:
        key = (session_id or "").strip() or str(uuid.uuid4())
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = ChatSession(key)
                self._sessions[key] = session
            self._sessions.move_to_end(key)
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)
            return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
