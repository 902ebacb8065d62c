"""
FastAPI application for the salon chat service.

Chat routes are served both at the root and under /api.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime

from .chat import router as chat_router
from .schemas import ErrorResponse, HealthResponse, ValidationFieldError, VersionResponse
from ..core.config import CORS_ORIGINS, VERSION, debug_enabled, validate_config
from ..core.errors import InternalError, SalonChatError
from ..util.logging import logger

APP_NAME = "salon-chat"

# Initialize the FastAPI application
app = FastAPI(
    title="Salon Chat API",
    version=VERSION,
    description="Retrieval-augmented chat assistant for salon services",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

# Credentials cannot be combined with a wildcard origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

for issue in validate_config():
    logger.warning(f"Configuration issue: {issue}")


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Liveness check."""
    return HealthResponse(status="ok", version=VERSION, timestamp=datetime.now())


@app.get("/version", response_model=VersionResponse)
@app.get("/api/version", response_model=VersionResponse)
def version_endpoint():
    return VersionResponse(name=APP_NAME, version=VERSION)


app.include_router(chat_router, tags=["chat"])
app.include_router(chat_router, prefix="/api", tags=["chat"])


def _error_content(error: ErrorResponse) -> dict:
    return error.model_dump(mode="json", exclude_none=True)


@app.exception_handler(SalonChatError)
async def salon_chat_exception_handler(request: Request, exc: SalonChatError):
    """Map domain errors to their HTTP status with a JSON error body."""
    logger.log_operation("request", "failed", {
        "path": request.url.path,
        "error_type": exc.error_type,
        "error": exc.message
    })
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(ErrorResponse(
            error_type=exc.error_type,
            message=exc.message,
            details=exc.details or None
        ))
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors, reported as 400."""
    errors = [
        ValidationFieldError(
            field=".".join(str(part) for part in err.get("loc", ()) if part != "body") or "body",
            message=err.get("msg", "Invalid value"),
            value=err.get("input") if isinstance(err.get("input"), (str, int, float, bool)) else None
        )
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_content(ErrorResponse(
            error_type="VALIDATION_ERROR",
            message="Invalid request",
            errors=errors
        ))
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}")
    details = {"debug": str(exc)} if debug_enabled() else None
    return JSONResponse(
        status_code=500,
        content=_error_content(ErrorResponse(
            error_type=InternalError.error_type,
            message="Internal server error",
            details=details
        ))
    )


def run():
    """Console entry point: serve the app with uvicorn."""
    import os
    import uvicorn

    uvicorn.run(
        "salon_chat.api.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=debug_enabled()
    )
