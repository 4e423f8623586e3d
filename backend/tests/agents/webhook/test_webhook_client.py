import json

import httpx
import pytest

from app.agents.webhook import AgentTransportError, WebhookAgentClient


def _client(handler) -> WebhookAgentClient:
    return WebhookAgentClient(
        url="https://agent.test/webhook",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def test_send_posts_message_and_session_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "Hola"})

    reply = _client(handler).send("¿Stock?", "session-1")

    assert seen["body"] == {"message": "¿Stock?", "sessionId": "session-1"}
    assert reply.raw == "Hola"
    assert reply.metadata["status_code"] == 200


def test_bare_value_is_returned_as_is():
    envelope = [{"output": "texto"}]

    reply = _client(lambda request: httpx.Response(200, json=envelope)).send("hola", "s")

    assert reply.raw == envelope


def test_empty_response_field_falls_back_to_whole_body():
    body = {"response": "", "labels": ["a"], "values": [1]}

    reply = _client(lambda request: httpx.Response(200, json=body)).send("hola", "s")

    assert reply.raw == body


def test_non_json_body_is_text():
    reply = _client(lambda request: httpx.Response(200, text="solo texto")).send("hola", "s")

    assert reply.raw == "solo texto"


def test_error_status_raises_transport_error():
    with pytest.raises(AgentTransportError, match="500"):
        _client(lambda request: httpx.Response(500, text="boom")).send("hola", "s")


def test_network_error_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AgentTransportError):
        _client(handler).send("hola", "s")


def test_timeout_raises_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(AgentTransportError, match="timed out"):
        _client(handler).send("hola", "s")


def test_missing_url_raises_transport_error():
    with pytest.raises(AgentTransportError):
        WebhookAgentClient(url="").send("hola", "s")
