from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.database import close_app_database, init_app_database
from app.core.logging import setup_logging
from app.middleware.cors import setup_cors
from app.modules.chatbot.router import router as chatbot_router
from app.modules.dashboard.router import router as dashboard_router

setup_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_app_database()
    try:
        yield
    finally:
        close_app_database()


app = FastAPI(title="Chart Dashboard Assistant API", lifespan=lifespan)

setup_cors(app)

app.include_router(chatbot_router)
app.include_router(dashboard_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
