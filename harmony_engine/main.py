import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from harmony_engine.api import milestones, progress
from harmony_engine.core.config import settings, validate_config
from harmony_engine.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from harmony_engine.core.logging import configure_logging
from harmony_engine.core.middleware.request_id import RequestIdMiddleware
from harmony_engine.features.milestones.catalog import CATALOG_VERSION

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("harmony")
    logger.info("Starting harmony progress engine...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("harmony").info("Stopping harmony progress engine...")


app = FastAPI(title="Harmony Progress Engine", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(progress.router, tags=["progress"])
app.include_router(milestones.router, tags=["milestones"])


@app.get("/healthz")
def healthz():
    return {"status": "ok", "catalog_version": CATALOG_VERSION}
