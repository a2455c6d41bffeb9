"""
FastAPI backend for the Content Moderation Agent.

This main file handles app initialization, error mapping and router
mounting. All endpoints are organized in the routers/ directory.
Scoring happens in the moderation worker (worker.py); results reach
websocket clients through the Redis results channel.
"""

import asyncio
import logging
import threading
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers import content, reviews, settings as settings_router, wordlist, model, websocket
from .config import configure_logging, settings
from .database import check_database_health, get_db_context, init_db
from .exceptions import (
    AuthorNotFoundError,
    BlockedWordNotFoundError,
    ContentNotFoundError,
    ActiveModelMismatchError,
    InvalidThresholdsError,
    ModelFileNotFoundError,
    ModerationAgentError,
    NoActiveModelError,
    RetrainSkippedError,
    ReviewNotFoundError,
)
from .redis_client import check_redis_health, listen_for_results
from .seed import seed_defaults
from .training_service import TrainingService
from .websocket_manager import broadcast_moderation_result

# =============================================================================
# Configuration
# =============================================================================

ALLOWED_ORIGINS = settings.allowed_origins
TESTING = settings.testing

configure_logging()
logger = logging.getLogger(__name__)

# =============================================================================
# Result Relay (Redis Pub/Sub -> WebSocket)
# =============================================================================

def start_result_relay(loop: asyncio.AbstractEventLoop) -> threading.Thread:
    """Forward published moderation results to websocket clients on ``loop``."""

    def relay(payload):
        asyncio.run_coroutine_threadsafe(broadcast_moderation_result(payload), loop)

    thread = threading.Thread(target=listen_for_results, args=(relay,), daemon=True)
    thread.start()
    return thread


# =============================================================================
# Lifespan Event Handler
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create tables, seed the default wordlist and settings, load the
    active classifier, start the result relay.
    """
    init_db()
    with get_db_context() as db:
        seed_defaults(db)
        try:
            TrainingService(db).reload_active()
        except ModerationAgentError as e:
            logger.info(f"No classifier loaded at startup: {e}")

    if not TESTING:
        start_result_relay(asyncio.get_running_loop())
        logger.info("Started moderation result relay")

    yield

    logger.info("Application shutting down")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Content Moderation Agent",
    description="Lexicon + classifier content moderation with adaptive thresholds",
    version="1.0.0",
    lifespan=lifespan
)

# =============================================================================
# Error Mapping
# =============================================================================

ERROR_STATUS = [
    ((ContentNotFoundError, AuthorNotFoundError, ReviewNotFoundError,
      BlockedWordNotFoundError, ModelFileNotFoundError, NoActiveModelError), 404),
    ((InvalidThresholdsError,), 400),
    ((RetrainSkippedError, ActiveModelMismatchError), 409),
]


async def moderation_error_handler(request: Request, exc: ModerationAgentError):
    """Translate service exceptions into HTTP errors."""
    status_code = 500
    for error_types, code in ERROR_STATUS:
        if isinstance(exc, error_types):
            status_code = code
            break
    if status_code == 500:
        logger.error(f"Unhandled moderation error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


app.add_exception_handler(ModerationAgentError, moderation_error_handler)

# CORS
origins = ALLOWED_ORIGINS.split(',') if ALLOWED_ORIGINS != '*' else ['*']

if origins == ['*'] and settings.is_production:
    logger.warning(
        "SECURITY WARNING: CORS is set to allow ALL origins (*). "
        "Set MODERATION_ALLOWED_ORIGINS to specific domains."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add a unique request ID to each response for tracing."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# Mount Routers
# =============================================================================

app.include_router(content.router)
app.include_router(reviews.router)
app.include_router(settings_router.router)
app.include_router(wordlist.router)
app.include_router(model.router)
app.include_router(websocket.router)


# =============================================================================
# Health
# =============================================================================

@app.get("/health")
def health():
    db_health = check_database_health()
    redis_health = check_redis_health()
    return {
        "status": "healthy" if db_health.get("database_connected") else "degraded",
        **db_health,
        **redis_health,
    }
