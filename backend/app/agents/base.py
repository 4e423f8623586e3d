from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class AgentReply:
    raw: Any
    metadata: dict = field(default_factory=dict)


class BaseAgentClient(ABC):
    @abstractmethod
    def send(self, message: str, session_id: str) -> AgentReply:
        """Send one user message to the external agent and return its untouched reply."""
        ...
