from contextlib import asynccontextmanager

import redis.asyncio as aioredis
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from app.config import settings
from app.logging_config import configure_logging
from app.metrics import metrics_endpoint
from app.middleware.logging_middleware import RequestLoggingMiddleware
from app.routers import auth, collections, tags
from app.schemas.common import ErrorResponse
from app.templating import render_notify

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure structured logging before anything else
    configure_logging()

    # Startup: create Redis connection and store on app.state
    app.state.redis = aioredis.from_url(
        settings.redis_url, encoding="utf-8", decode_responses=True
    )
    try:
        yield
    finally:
        await app.state.redis.aclose()


app = FastAPI(title="Tagboard", version="0.1.0", lifespan=lifespan)

app.add_middleware(RequestLoggingMiddleware)
# Outermost, so every handler sees a decoded session
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

app.include_router(auth.router)
app.include_router(tags.router)
app.include_router(collections.router)

# Prometheus metrics endpoint
app.get("/metrics")(metrics_endpoint)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Store failures abort the request; nothing is retried."""
    log.error("unhandled_database_error", error=str(exc), exc_info=exc)
    if request.url.path.startswith("/api/"):
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="database_error").model_dump(),
        )
    return render_notify(request, "Something went wrong, please try again later.", status_code=500)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
