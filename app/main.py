"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.application.errors import GymError, ValidationError
from app.application.scheduler import start_scheduler, shutdown_scheduler
from app.infrastructure.cache.provider import close_cache, get_cache
from app.infrastructure.db.session import check_db_connection
from app.api.v1 import auth, people, plans, person_subs, freezes, single_visits, statistics

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    try:
        yield
    finally:
        if settings.SCHEDULER_ENABLED:
            shutdown_scheduler()
        close_cache()


def register_error_handlers(app: FastAPI) -> None:
    """GymError → {"error": message} (+ "fields" для ValidationError) с нужным статусом"""

    @app.exception_handler(GymError)
    async def gym_error_handler(request: Request, exc: GymError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        body = {"error": exc.message}
        if isinstance(exc, ValidationError) and exc.fields:
            body["fields"] = exc.fields
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = {
            ".".join(str(part) for part in err["loc"][1:]) or "body": err["msg"]
            for err in exc.errors()
        }
        return JSONResponse(status_code=400, content={"error": "failed to decode request", "fields": fields})


def create_app() -> FastAPI:
    """
    Application factory - создаёт и настраивает FastAPI приложение

    Returns:
        Настроенный FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="GymBase",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # Error-logging middleware — catches ALL exceptions including sync routes
    from starlette.middleware.base import BaseHTTPMiddleware

    class ErrorLoggingMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            try:
                response = await call_next(request)
                return response
            except Exception:
                tb_str = traceback.format_exc()
                logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
                return JSONResponse(status_code=500, content={"error": "internal error"})

    app.add_middleware(ErrorLoggingMiddleware)
    register_error_handlers(app)

    # Routers
    app.include_router(auth.router)
    app.include_router(people.router)
    app.include_router(plans.router)
    app.include_router(person_subs.router)
    app.include_router(freezes.router)
    app.include_router(single_visits.router)
    app.include_router(statistics.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (проверяет доступность БД и кэша)"""
        check_db_connection()
        cache = get_cache()
        if hasattr(cache, "ping"):
            cache.ping()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=get_settings().DEBUG,
    )
