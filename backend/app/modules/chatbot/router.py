from fastapi import APIRouter, Depends, HTTPException

from app.core.identity import get_current_user_id
from app.modules.chatbot.schemas import (
    ChatRequest,
    ChatResponse,
    FavoriteQuestion,
    MessageSchema,
    SaveFavoriteRequest,
)
from app.modules.chatbot.service import (
    chat,
    delete_favorite,
    delete_session,
    get_session_messages,
    list_favorites,
    save_favorite,
)

router = APIRouter(tags=["Chatbot"], prefix="/v1/chatbot")


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="No authenticated user. Sign in and try again.")
    return user_id


@router.post("/chat", response_model=ChatResponse)
def chat_endpoint(request: ChatRequest):
    try:
        return chat(request=request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/sessions/{session_id}/messages", response_model=list[MessageSchema])
def get_session_messages_endpoint(session_id: str):
    messages = get_session_messages(session_id)
    if messages is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return messages


@router.delete("/sessions/{session_id}")
def delete_session_endpoint(session_id: str):
    if not delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted"}


@router.get("/favorites", response_model=list[FavoriteQuestion])
def list_favorites_endpoint(user_id: str | None = Depends(get_current_user_id)):
    return list_favorites(_require_user(user_id))


@router.post("/favorites", response_model=FavoriteQuestion)
def save_favorite_endpoint(
    request: SaveFavoriteRequest,
    user_id: str | None = Depends(get_current_user_id),
):
    owner = _require_user(user_id)
    try:
        return save_favorite(owner, request.question)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/favorites/{favorite_id}")
def delete_favorite_endpoint(
    favorite_id: int,
    user_id: str | None = Depends(get_current_user_id),
):
    if not delete_favorite(_require_user(user_id), favorite_id):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return {"status": "deleted"}
