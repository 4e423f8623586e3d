from app.agents.webhook.client import AgentTransportError, WebhookAgentClient
from app.core.config import settings


def create_agent_client(url: str | None = None, timeout: float | None = None) -> WebhookAgentClient:
    return WebhookAgentClient(
        url=url if url is not None else settings.AGENT_WEBHOOK_URL,
        timeout=timeout if timeout is not None else settings.AGENT_TIMEOUT_SECONDS,
    )


__all__ = ["AgentTransportError", "WebhookAgentClient", "create_agent_client"]
