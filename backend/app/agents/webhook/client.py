import logging
import time
from typing import Any

import httpx

from app.agents.base import AgentReply, BaseAgentClient

logger = logging.getLogger(__name__)


class AgentTransportError(RuntimeError):
    pass


class WebhookAgentClient(BaseAgentClient):
    """Calls the agent's HTTP webhook with ``{message, sessionId}``."""

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = (url or "").strip()
        self.timeout = timeout
        self.transport = transport

    @staticmethod
    def _unwrap_response(body: Any) -> Any:
        # Some workflows answer {"response": ...}, others the bare value.
        if isinstance(body, dict) and body.get("response"):
            return body["response"]
        return body

    def send(self, message: str, session_id: str) -> AgentReply:
        if not self.url:
            raise AgentTransportError("AGENT_WEBHOOK_URL is not configured.")

        started = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.url,
                    json={"message": message, "sessionId": session_id},
                )
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise AgentTransportError(f"Agent request timed out after {self.timeout}s.") from exc
        except httpx.HTTPStatusError as exc:
            raise AgentTransportError(
                f"Agent request failed ({exc.response.status_code}): {exc.response.text[:300]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise AgentTransportError(f"Agent request failed: {exc}") from exc

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        elapsed = time.perf_counter() - started
        return AgentReply(
            raw=self._unwrap_response(body),
            metadata={
                "status_code": response.status_code,
                "elapsed_seconds": round(elapsed, 3),
            },
        )
