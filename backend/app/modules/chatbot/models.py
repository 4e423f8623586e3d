import time
from typing import Optional

from sqlmodel import Field, SQLModel


class FrequentQuestion(SQLModel, table=True):
    __tablename__ = "chat_frequent_questions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    question: str
    created_at: float = Field(default_factory=time.time, index=True)
