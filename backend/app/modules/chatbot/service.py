import logging

from app.agents.chart import interpret
from app.agents.webhook import AgentTransportError, create_agent_client
from app.core.config import settings
from app.modules.chatbot.repository import FavoriteRepository
from app.modules.chatbot.schemas import ChatRequest, ChatResponse
from app.modules.chatbot.session import ROLE_AGENT, ROLE_USER, ChatMessage, SessionStore

logger = logging.getLogger(__name__)

AGENT_ERROR_MESSAGE = "⚠️ Error al contactar con el agente."

session_store = SessionStore(max_sessions=settings.CHAT_MAX_SESSIONS)


def chat(request: ChatRequest) -> ChatResponse:
    message = (request.message or "").strip()
    if not message:
        raise ValueError("Message must not be empty.")

    session = session_store.get_or_create(request.session_id)
    session.append(ChatMessage(role=ROLE_USER, content=request.message))

    try:
        reply = create_agent_client().send(message, session.id)
        content = reply.raw
        logger.info(
            "Agent replied for session %s (status %s, %ss)",
            session.id,
            reply.metadata.get("status_code"),
            reply.metadata.get("elapsed_seconds"),
        )
    except AgentTransportError as exc:
        logger.warning("Agent call failed for session %s: %s", session.id, exc)
        content = AGENT_ERROR_MESSAGE

    agent_message = session.append(ChatMessage(role=ROLE_AGENT, content=content))
    decision = interpret(agent_message.content)

    return ChatResponse(
        status="success",
        session_id=session.id,
        message=agent_message.to_dict(),
        render=decision.to_dict(),
    )


def get_session_messages(session_id: str) -> list[dict] | None:
    session = session_store.get(session_id)
    if session is None:
        return None
    return [message.to_dict() for message in session.messages]


def delete_session(session_id: str) -> bool:
    return session_store.discard(session_id)


# Favourite question services.
def save_favorite(user_id: str, question: str) -> dict:
    clean_question = (question or "").strip()
    if not clean_question:
        raise ValueError("Question must not be empty.")
    return FavoriteRepository().add(user_id, clean_question)


def list_favorites(user_id: str) -> list[dict]:
    return FavoriteRepository().list_for_user(user_id)


def delete_favorite(user_id: str, favorite_id: int) -> bool:
    return FavoriteRepository().delete(user_id, favorite_id)
