"""Rotary club backend entrypoint: app, routers and error envelopes."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from backend.app.api import (
    auth,
    blog_posts,
    committees,
    documents,
    dues,
    events,
    projects,
    public,
    quotations,
    statistics,
    users,
)
from backend.app.core.dev_seed import ensure_default_dev_admin
from backend.app.core.errors import AppError
from backend.app.core.logging_config import configure_logging
from backend.app.core.responses import error_response
from backend.app.core.settings import get_settings
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine

configure_logging()
logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.api_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(committees.router)
app.include_router(projects.router)
app.include_router(dues.router)
app.include_router(documents.router)
app.include_router(quotations.router)
app.include_router(blog_posts.router)
app.include_router(events.router)
app.include_router(statistics.router)
app.include_router(public.router)


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "form", "header")]
    return ".".join(parts) or "non_field_errors"


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        errors.setdefault(_field_name(error.get("loc", ())), []).append(error.get("msg", "Invalid value"))
    return error_response(422, "Validation Error", errors)


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = f"An unexpected error occurred: {exc}" if settings.debug else "An unexpected error occurred"
    return error_response(500, message)


@app.get("/")
def read_root():
    return {"app": settings.app_name, "version": settings.api_version, "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_database():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_default_dev_admin(db)
    finally:
        db.close()
