import logging
import threading
import time
from unittest.mock import MagicMock, patch

from app.agents.base import AgentReply
from app.agents.webhook import AgentTransportError


def _agent_returning(raw):
    agent = MagicMock()
    agent.send.return_value = AgentReply(raw=raw, metadata={"status_code": 200})
    return agent


def test_chat_endpoint_text_reply(client):
    agent = _agent_returning("El stock total es 1.200 m3.")

    with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
        response = client.post("/v1/chatbot/chat", json={"message": "¿Stock?"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["message"]["role"] == "agent"
    assert data["message"]["content"] == "El stock total es 1.200 m3."
    assert data["render"] == {"kind": "text", "text": "El stock total es 1.200 m3."}
    agent.send.assert_called_once_with("¿Stock?", data["session_id"])


def test_chat_endpoint_chart_reference(client):
    agent = _agent_returning("Here: ![x](http://h/c?grafico_id=abc-1) done")

    with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
        response = client.post("/v1/chatbot/chat", json={"message": "grafico"})

    render = response.json()["render"]
    assert render["kind"] == "chart_reference"
    assert render["chart_id"] == "abc-1"
    assert render["cleaned_text"] == "Here:  done"


def test_chat_endpoint_inline_chart(client):
    agent = _agent_returning({"labels": ["a", "b"], "values": [1, 2], "chart_type": "bar", "title": "T"})

    with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
        response = client.post(
            "/v1/chatbot/chat",
            json={"message": "ventas", "session_id": "existing-session"},
        )

    data = response.json()
    assert data["session_id"] == "existing-session"
    assert data["render"]["kind"] == "inline_chart"
    assert data["render"]["payload"]["labels"] == ["a", "b"]


def test_chat_endpoint_agent_failure_becomes_agent_message(client):
    agent = MagicMock()
    agent.send.side_effect = AgentTransportError("Agent webhook timed out.")

    with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
        response = client.post("/v1/chatbot/chat", json={"message": "Hola"})

    assert response.status_code == 200
    data = response.json()
    assert data["message"]["content"] == "⚠️ Error al contactar con el agente."
    assert data["render"]["kind"] == "text"


def test_chat_endpoint_rejects_blank_message(client):
    response = client.post("/v1/chatbot/chat", json={"message": "   "})

    assert response.status_code == 400


def test_chat_endpoint_validation_error(client):
    response = client.post("/v1/chatbot/chat", json={})

    assert response.status_code == 422


def test_session_messages_are_kept_in_order(client):
    agent = _agent_returning("respuesta")

    with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
        client.post("/v1/chatbot/chat", json={"message": "uno", "session_id": "s1"})
        client.post("/v1/chatbot/chat", json={"message": "dos", "session_id": "s1"})

    response = client.get("/v1/chatbot/sessions/s1/messages")

    assert response.status_code == 200
    messages = response.json()
    assert [(m["role"], m["content"]) for m in messages] == [
        ("user", "uno"),
        ("agent", "respuesta"),
        ("user", "dos"),
        ("agent", "respuesta"),
    ]


def test_unknown_session_is_not_found(client):
    assert client.get("/v1/chatbot/sessions/missing/messages").status_code == 404
    assert client.delete("/v1/chatbot/sessions/missing").status_code == 404


def test_delete_session(client):
    agent = _agent_returning("ok")
    with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
        client.post("/v1/chatbot/chat", json={"message": "hola", "session_id": "s2"})

    assert client.delete("/v1/chatbot/sessions/s2").status_code == 200
    assert client.get("/v1/chatbot/sessions/s2/messages").status_code == 404


def test_favorites_require_user(client):
    assert client.get("/v1/chatbot/favorites").status_code == 401
    assert client.post("/v1/chatbot/favorites", json={"question": "x"}).status_code == 401


def test_favorites_roundtrip(client):
    headers = {"X-User-Id": "u1"}

    created = client.post("/v1/chatbot/favorites", json={"question": " ¿Stock por predio? "}, headers=headers)
    assert created.status_code == 200
    favorite = created.json()
    assert favorite["question"] == "¿Stock por predio?"

    listed = client.get("/v1/chatbot/favorites", headers=headers).json()
    assert [item["id"] for item in listed] == [favorite["id"]]
    assert client.get("/v1/chatbot/favorites", headers={"X-User-Id": "u2"}).json() == []

    assert client.delete(f"/v1/chatbot/favorites/{favorite['id']}", headers=headers).status_code == 200
    assert client.get("/v1/chatbot/favorites", headers=headers).json() == []


def test_blank_favorite_is_rejected(client):
    response = client.post("/v1/chatbot/favorites", json={"question": "  "}, headers={"X-User-Id": "u1"})

    assert response.status_code == 400


def test_slow_agent_does_not_block_other_requests(client):
    entered = threading.Event()
    release = threading.Event()

    def slow_send(message, session_id):
        entered.set()
        release.wait(timeout=5)
        return AgentReply(raw="tarde")

    agent = MagicMock()
    agent.send.side_effect = slow_send

    with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
        worker = threading.Thread(
            target=client.post, args=("/v1/chatbot/chat",), kwargs={"json": {"message": "hola"}}
        )
        worker.start()
        try:
            assert entered.wait(timeout=5)
            started = time.perf_counter()
            health = client.get("/health")
            elapsed = time.perf_counter() - started
        finally:
            release.set()
            worker.join(timeout=5)

    assert health.status_code == 200
    assert elapsed < 0.5


def test_agent_reply_metadata_is_logged(client, caplog):
    agent = MagicMock()
    agent.send.return_value = AgentReply(raw="ok", metadata={"status_code": 200, "elapsed_seconds": 0.42})

    with caplog.at_level(logging.INFO, logger="app.modules.chatbot.service"):
        with patch("app.modules.chatbot.service.create_agent_client", return_value=agent):
            client.post("/v1/chatbot/chat", json={"message": "hola", "session_id": "s-log"})

    assert "Agent replied for session s-log (status 200, 0.42s)" in caplog.text
