"""Main FastAPI application module.

This module initializes the FastAPI application, registers all route handlers
and maps every error onto the uniform response envelope.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging_config import setup_logging
from config import (
    API_HOST,
    API_PORT,
    CORS_ALLOWED_ORIGINS,
    IS_PRODUCTION,
    MEDIA_BASE_URL,
    UPLOAD_DIR,
)
from core.exceptions import LMSError
from core.responses import api_response
from api.routes import assignments, auth, blogs, course_content, courses, forum

# Setup logging
setup_logging()

logger = logging.getLogger(__name__)

# Initialize FastAPI application
app = FastAPI(
    title="LearnHub API",
    description="Backend API service for courses, lessons, assignments, course forums and blogs.",
    version="1.0.0",
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route handlers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(course_content.router)
app.include_router(assignments.router)
app.include_router(forum.router)
app.include_router(blogs.router)

# Stored submission files
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount(MEDIA_BASE_URL, StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")


@app.exception_handler(LMSError)
def handle_lms_error(request: Request, exc: LMSError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected (%s): %s",
            request.method,
            request.url.path,
            exc.kind.value,
            exc.message,
        )
    return api_response(exc.message, status_code=exc.status_code, success=False)


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return api_response(str(exc.detail), status_code=exc.status_code, success=False)


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return api_response(
        "Validation failed", {"errors": errors}, status_code=400, success=False
    )


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    message = "Internal server error" if IS_PRODUCTION else str(exc)
    return api_response(message, status_code=500, success=False)


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root path, returns API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": "LearnHub API",
        "version": "1.0.0",
        "description": "Backend API service for courses, assignments and course forums.",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    logger.info("Starting LearnHub API at %s (docs at %s/docs)", server_url, server_url)
    uvicorn.run("app:app", host=API_HOST, port=API_PORT, reload=True)
