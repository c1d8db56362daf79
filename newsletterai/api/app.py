"""FastAPI server for NewsLetterAI"""

from __future__ import annotations

import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from newsletterai.api.middleware.security_headers import SecurityHeadersMiddleware
from newsletterai.api.middleware.user_auth import USER_ID_HEADER
from newsletterai.api.routes.health import router as health_router
from newsletterai.api.routes.newsletters import router as newsletters_router
from newsletterai.config import API_PREFIX, APP_VERSION, is_development
from newsletterai.infrastructure.database import init_database
from newsletterai.observability.logging import get_logger
from newsletterai.observability.telemetry import counter, log_event
from newsletterai.utils.redaction import redact

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="NewsLetterAI API", version=APP_VERSION)

logger = get_logger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Custom validation error handler that prevents leaking internal validation logic.
    """
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


ALLOWED_ORIGINS: list[str] = []

# Front end runs locally in development
if is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", USER_ID_HEADER],
    expose_headers=["Content-Disposition"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Initialize database schema
try:
    logger.info("Initializing database schema...")
    init_database()
    logger.info("Database initialization complete")
except sqlite3.OperationalError as e:
    logger.critical("Database schema error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e
except Exception as e:
    logger.critical("Unexpected database initialization error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e

app.include_router(health_router)
app.include_router(newsletters_router)

log_event("api.startup", service="newsletterai", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "NewsLetterAI API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "newsletters": f"{API_PREFIX}/",
            "generate": f"{API_PREFIX}/generate-and-save",
            "download": f"{API_PREFIX}/{{id}}/download",
            "status": f"{API_PREFIX}/{{id}}/status",
            "send": f"{API_PREFIX}/{{id}}/send",
        },
    }


def main() -> None:
    """Run the API with uvicorn (console script: newsletterai-api)."""
    import uvicorn

    from newsletterai.config import API_HOST, API_PORT, LOG_LEVEL

    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())
