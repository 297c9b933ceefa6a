from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from settlement_engine.api.reports import router as reports_router
from settlement_engine.api.settlement import router as settlement_router
from settlement_engine.api.stats import router as stats_router
from settlement_engine.config import settings
from settlement_engine.logging_config import setup_logging
from settlement_engine.storage.database import Base, engine
from settlement_engine.storage import models  # noqa: F401

setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Settlement & Revenue-Share Engine", lifespan=lifespan)
app.include_router(settlement_router)
app.include_router(stats_router)
app.include_router(reports_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
