from typing import Any, Optional

from pydantic import BaseModel


class ChatRequest(BaseModel):
    message: str
    session_id: Optional[str] = None


class MessageSchema(BaseModel):
    role: str
    content: Any = None
    timestamp: float


class ChatResponse(BaseModel):
    status: str
    session_id: str
    message: MessageSchema
    render: dict[str, Any]


# ── Favourite questions ──

class SaveFavoriteRequest(BaseModel):
    question: str


class FavoriteQuestion(BaseModel):
    id: int
    question: str
    created_at: float
