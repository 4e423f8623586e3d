import time

from sqlmodel import Session, select

from app.core.database import app_engine
from app.modules.chatbot.models import FrequentQuestion

MAX_FAVORITES = 50


class FavoriteRepository:
    def __init__(self, engine=app_engine):
        self.engine = engine

    @staticmethod
    def _favorite_to_dict(item: FrequentQuestion) -> dict:
        return {
            "id": int(item.id) if item.id is not None else 0,
            "question": item.question,
            "created_at": float(item.created_at),
        }

    def add(self, user_id: str, question: str) -> dict:
        item = FrequentQuestion(user_id=user_id, question=question, created_at=time.time())
        with Session(self.engine) as session:
            session.add(item)
            session.commit()
            session.refresh(item)
            self._enforce_max_favorites(session, user_id)
            return self._favorite_to_dict(item)

    def list_for_user(self, user_id: str) -> list[dict]:
        with Session(self.engine) as session:
            items = session.exec(
                select(FrequentQuestion)
                .where(FrequentQuestion.user_id == user_id)
                .order_by(FrequentQuestion.created_at.desc(), FrequentQuestion.id.desc())
            ).all()
            return [self._favorite_to_dict(item) for item in items]

    def delete(self, user_id: str, favorite_id: int) -> bool:
        with Session(self.engine) as session:
            item = session.exec(
                select(FrequentQuestion)
                .where(FrequentQuestion.id == favorite_id)
                .where(FrequentQuestion.user_id == user_id)
            ).first()
            if not item:
                return False

            session.delete(item)
            session.commit()
            return True

    def _enforce_max_favorites(self, session: Session, user_id: str) -> None:
        items = session.exec(
            select(FrequentQuestion)
            .where(FrequentQuestion.user_id == user_id)
            .order_by(FrequentQuestion.created_at.desc(), FrequentQuestion.id.desc())
        ).all()

        if len(items) <= MAX_FAVORITES:
            return

        for item in items[MAX_FAVORITES:]:
            session.delete(item)
        session.commit()
