from __future__ import annotations  # FastAPI server for the interview tracker

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import AuthProvider, router
from candidate_management import CandidateStore
from config import Settings, settings as default_settings
from errors import InterviewError, ValidationError, describe_validation
from interview_session import SessionStore
from llm_gateway import CompletionClient, CompletionService
from principal_management import PrincipalStore
from services.access import AccessGuard
from services.assistant import AssistantService
from services.principals import PrincipalService
from services.sessions import InterviewService
from storage import Database, DocumentStore, migrate


logger = logging.getLogger(__name__)


def wire_services(app: FastAPI, db: Database, completion: CompletionClient, cfg: Settings) -> None:
    """Build stores and services over ``db`` and attach them to ``app.state``."""

    documents = DocumentStore(db)
    sessions = SessionStore(documents)
    candidates = CandidateStore(documents)
    principals = PrincipalStore(documents)
    guard = AccessGuard(sessions)

    interviews = InterviewService(
        candidates,
        sessions,
        principals,
        guard,
        max_retries=cfg.MAX_WRITE_RETRIES,
    )
    principal_service = PrincipalService(principals, guard)

    app.state.db = db
    app.state.interviews = interviews
    app.state.principals = principal_service
    app.state.assistant = AssistantService(completion, interviews)
    app.state.auth = AuthProvider(principal_service, cfg.PRINCIPAL_HEADER)


def install_error_handlers(app: FastAPI) -> None:  # Map failures onto the {"error", "details"} envelope
    @app.exception_handler(InterviewError)
    async def _interview_error(request: Request, exc: InterviewError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.envelope())

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError(details=describe_validation(exc))  # type: ignore[arg-type]
        logger.warning("%s %s invalid body: %s", request.method, request.url.path, error.details)
        return JSONResponse(status_code=error.status_code, content=error.envelope())

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    cfg: Optional[Settings] = None,
    completion: Optional[CompletionClient] = None,
) -> FastAPI:
    """Application factory; the database and completion client are opened in the lifespan."""

    app_settings = cfg or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        db = Database(app_settings.DB_PATH)
        migrate(db)
        owned: Optional[CompletionService] = None
        client = completion
        if client is None:
            owned = CompletionService.from_config(
                app_settings.APP_CONFIG_PATH or None,
                app_settings.PROMPTS_PATH or None,
            )
            client = owned
        wire_services(app, db, client, app_settings)
        logger.info("Interview tracker ready db=%s", app_settings.DB_PATH)
        try:
            yield
        finally:
            if owned is not None:
                owned.close()

    app = FastAPI(title="Interview Tracker API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()
