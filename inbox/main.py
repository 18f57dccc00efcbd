"""FastAPI application wiring for the inbox service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .api.errors import register_exception_handlers
from .api.routes import router as api_router
from .config import get_settings
from .db import Database
from .domain.messages import MessageService
from .domain.service import AccountService
from .notifications.email import EmailSender
from .repository import AccountRepository
from .suggestions.completion import SuggestionClient

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, services, HTTP clients) for the app lifecycle."""
    database = Database.from_url(settings.database_url)
    repository = AccountRepository(database)
    mailer = EmailSender(settings)
    suggestion_client = SuggestionClient(settings)

    app.state.database = database
    app.state.account_service = AccountService(repository, mailer)
    app.state.message_service = MessageService(repository)
    app.state.suggestion_client = suggestion_client
    logger.info("%s %s started", settings.app_name, settings.version)
    try:
        yield
    finally:
        mailer.close()
        suggestion_client.close()
        database.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)

register_exception_handlers(app)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(api_router)
