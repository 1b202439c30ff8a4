"""
Dealflow — FastAPI application entry-point (Telegram webhook mode).

Run with:
    uvicorn dealflow.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dealflow.config import settings
from dealflow.database import async_session, create_tables, engine
from dealflow.routers import telegram
from dealflow.services.lifecycle import LifecycleCoordinator
from dealflow.services.messaging import TelegramChannel
from dealflow.services.narrative import NarrativeGenerator

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: create tables, wire the coordinator ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables(engine)

    channel = TelegramChannel.from_settings()
    generator = NarrativeGenerator.from_settings()
    app.state.coordinator = LifecycleCoordinator.from_settings(async_session, channel, generator)
    logger.info(f"{settings.APP_NAME} is running (webhook mode)")

    yield

    await channel.aclose()
    await generator.aclose()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Deal-flow pipeline for an investment DAO: pitch, evaluate, vote, reward.",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Register API routers ──
app.include_router(telegram.router)


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.APP_NAME}
