"""Main FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.auth_routes import router as auth_router
from app.api.category_routes import router as category_router
from app.api.drama_routes import router as drama_router
from app.api.schemas import ErrorResponse
from app.api.search_routes import router as search_router
from app.api.user_routes import router as user_router
from app.core.cache import CacheService
from app.core.config import settings
from app.core.rate_limit import general_limiter
from app.core.redis_client import get_redis
from app.domain.entities import utcnow
from app.domain.exceptions import DomainError
from app.infrastructure.database.connection import check_database, close_db, init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    await init_db()
    logger.info("Database initialized")
    yield
    await close_db()
    logger.info("Shutting down %s", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Short-drama platform API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method, request.url.path, response.status_code, duration_ms,
    )
    return response


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------
def _error(status_code: int, message: str, error=None, headers=None) -> JSONResponse:
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Domain error on %s: %s", request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return _error(status.HTTP_400_BAD_REQUEST, "Validation failed", errors)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = None if settings.is_production else str(exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", detail)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
for router in (auth_router, drama_router, category_router, user_router, search_router):
    app.include_router(router, prefix=settings.api_prefix, dependencies=[Depends(general_limiter)])


@app.get("/health")
async def health_check(redis_client: aioredis.Redis = Depends(get_redis)):
    """Report database and Redis reachability."""
    database_ok = await check_database()
    redis_ok = await CacheService(redis_client).ping()
    healthy = database_ok and redis_ok
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "degraded",
            "services": {
                "database": "up" if database_ok else "down",
                "redis": "up" if redis_ok else "down",
            },
            "timestamp": utcnow().isoformat(),
        },
    )
