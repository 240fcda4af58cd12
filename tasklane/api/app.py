"""
FastAPI Application

Main entry point for the API.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .tasks import router as tasks_router, ERROR_MESSAGES
from .models import TaskCreate, HealthResponse
from .deps import get_db
from ..config.logging import get_logger, log_error, request_id_var
from ..config.settings import settings
from ..kernel.errors import TaskNotFound, IllegalTransition, StoreFailure
from ..kernel.lifecycle import TaskLifecycle
from ..kernel.store import TaskStore
from ..scheduler import TimerRegistry, get_scheduler, start_scheduler, stop_scheduler

logger = get_logger("api")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every incoming HTTP request with method, path, status and duration.
    Generates X-Request-ID for log correlation across the request lifecycle."""

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = uuid.uuid4().hex[:8]
        request.state.request_id = req_id
        token = request_id_var.set(req_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        response.headers["X-Request-ID"] = req_id

        logger.info(
            "%s %s -> %d [%.1fms]",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"extra_data": {
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }}
        )
        return response


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    store = TaskStore(get_db())

    start_scheduler()
    app.state.lifecycle = TaskLifecycle(store, TimerRegistry(get_scheduler()))

    if settings.tasks.recover_on_startup:
        recovered = app.state.lifecycle.recover()
        logger.info("Recovered %d in-progress tasks", recovered)

    yield

    # Graceful shutdown; in-flight countdowns are lost
    stop_scheduler()


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    """'The following fields are required: title, description.' for body errors."""
    fields = []
    for err in exc.errors():
        loc = err.get("loc", ())
        if err.get("type") == "json_invalid":
            return "Request body is not valid JSON."
        if len(loc) >= 2 and loc[0] == "body":
            if loc[-1] not in TaskCreate.model_fields:
                return "Request body is not a valid task."
            fields.append(str(loc[-1]))
        elif tuple(loc) == ("body",):
            # Missing or non-object body: every field is missing
            fields.extend(TaskCreate.model_fields)
        elif len(loc) >= 2:
            return f"Invalid value for: {loc[-1]}."

    unique = list(dict.fromkeys(fields)) or list(TaskCreate.model_fields)
    return f"The following fields are required: {', '.join(unique)}."


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Create FastAPI application."""

    app = FastAPI(
        title="Tasklane API",
        description="Create tasks and run, pause, resume or cancel their simulated work",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Request logging (outermost: added first, runs last in LIFO stack)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(tasks_router)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return {"status": "ok"}

    # Error handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(TaskNotFound)
    async def not_found_handler(request: Request, exc: TaskNotFound):
        return _error(404, str(exc))

    @app.exception_handler(IllegalTransition)
    async def illegal_transition_handler(request: Request, exc: IllegalTransition):
        return _error(400, str(exc))

    @app.exception_handler(StoreFailure)
    async def store_failure_handler(request: Request, exc: StoreFailure):
        route = request.scope.get("route")
        name = getattr(route, "name", None)
        log_error(logger, exc, context=name or request.url.path)
        return _error(500, ERROR_MESSAGES.get(name, "An unexpected error occurred."))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception: %s %s: %s",
            request.method, request.url.path, exc,
            exc_info=True,
        )
        return _error(500, "An unexpected error occurred.")

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tasklane.api.app:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=True,
    )
