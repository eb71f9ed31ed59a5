"""
MindEase - Main FastAPI Application
"""

import logging
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .config import settings
from .api import chat_router, sessions_router, summary_router
from .api.deps import ClientDisconnected, build_lifecycle, build_llm_provider
from .core import MindEaseError
from .core.logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .storage import LocalSessionStore

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    store = LocalSessionStore(settings.local_storage_path, timeout=settings.store_timeout_seconds)
    provider = build_llm_provider(settings)
    if provider is None:
        logger.warning("No LLM API key configured, chat replies will use the fallback text")

    app.state.store = store
    app.state.lifecycle = build_lifecycle(settings, store, provider)

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Storage path: {settings.local_storage_path}")
    logger.info(f"LLM provider: {settings.llm_provider}, chat model: {settings.chat_model}")
    logger.info(f"Environment: {settings.environment}, log level: {settings.log_level.upper()}")
    yield
    # Shutdown
    await store.close()
    logger.info(f"Shutting down {settings.app_name}")


def _error_body(message: str, details=None) -> dict:
    body = {"success": False, "error": message}
    if details is not None and not settings.is_production:
        body["details"] = details
    return body


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Session core for the MindEase support chat: context assembly and session summaries",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware (after CORS)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(sessions_router)
app.include_router(chat_router)
app.include_router(summary_router)


@app.exception_handler(MindEaseError)
async def mindease_error_handler(request: Request, exc: MindEaseError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        body = _error_body(exc.public_message, details=exc.message)
    else:
        body = _error_body(exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    missing = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    message = f"Missing or invalid fields: {', '.join(f for f in missing if f)}" if missing else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(message, details=[
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()
        ]),
    )


@app.exception_handler(ClientDisconnected)
async def client_disconnected_handler(request: Request, exc: ClientDisconnected):
    # Nobody is listening; the status only shows up in logs
    return Response(status_code=499)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "storage": settings.storage_type,
        "llm_configured": bool(settings.resolved_llm_api_key()),
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "mindease.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
