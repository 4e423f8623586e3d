import os

os.environ["APP_DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from app.core.database import app_engine, get_db, register_models
from app.main import app
from app.modules.chatbot.service import session_store
from app.modules.dashboard.service import flow_registry

register_models()


@pytest.fixture()
def db():
    SQLModel.metadata.create_all(app_engine)
    with Session(app_engine) as session:
        yield session
    SQLModel.metadata.drop_all(app_engine)


@pytest.fixture(autouse=True)
def reset_in_memory_state():
    yield
    session_store.clear()
    flow_registry.clear()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
