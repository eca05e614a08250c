import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from goalalerts.config import settings
from goalalerts.engine.router import router as notifications_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.state_backend == "sql":
        from goalalerts.db import init_state_table

        await init_state_table()
        logger.info("Notification state table ready")
    yield


app = FastAPI(title="GoalAlerts", version="0.1.0", lifespan=lifespan)
app.include_router(notifications_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "notifications": {
            "list": "/notifications",
            "unread_count": "/notifications/unread-count",
            "preferences": "/notifications/preferences",
            "check": "/notifications/check",
            "summary": "/notifications/summary/{period}",
            "reminders": "/notifications/reminders/{type}",
            "toasts": "/notifications/toasts",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
