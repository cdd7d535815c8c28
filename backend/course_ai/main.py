import logging
import os
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from course_ai.core.config import get_settings
from course_ai.core.errors import ErrorKind, ServiceError
from course_ai.core.logging import setup_logging
from course_ai.routers import ai
from course_ai.services.container import build_services

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Create upload directory if it doesn't exist (needed before mounting static files)
os.makedirs(settings.upload_dir, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: connect the external clients once for the whole process
    app.state.services = build_services(settings)
    logger.info("Services ready (chat=%s, embeddings=%s)", settings.chat_model, settings.embedding_model)
    yield


app = FastAPI(
    title="Course AI API",
    description="Handout-grounded tutoring: upload, chat, quizzes and weak topics",
    version="1.0.0",
    lifespan=lifespan,
)
app.router.redirect_slashes = False

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
        "http://localhost",
        "http://127.0.0.1",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount static files for uploaded handouts
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

# Include routers
app.include_router(ai.router, prefix="/ai", tags=["AI"])


def _error_body(message: str, exc: Exception | None = None) -> dict:
    body = {"success": False, "message": message}
    if exc is not None and not settings.is_production:
        body["stack"] = "".join(traceback.format_exception(exc))
    return body


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    kind = exc.kind
    if kind == ErrorKind.VALIDATION:
        logger.info("%s %s -> 400: %s", request.method, request.url.path, exc.message)
        body = _error_body(exc.message)
    elif kind == ErrorKind.NOT_FOUND:
        logger.info("%s %s -> 404: %s", request.method, request.url.path, exc.message)
        body = _error_body(exc.message)
    elif kind == ErrorKind.PROCESSING:
        logger.error("%s %s -> 500: %s", request.method, request.url.path, exc.message)
        body = _error_body(exc.message, exc)
    else:
        raise ValueError(f"Unhandled error kind: {kind}")
    return JSONResponse(status_code=kind.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_body(message))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("%s %s -> 500 unhandled", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", exc),
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
