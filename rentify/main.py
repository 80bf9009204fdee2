# Application entrypoint: configures logging level, middleware, error mapping, startup routines and routers.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
import threading
import time

from .db import Base, engine
from .errors import RentifyError
from .routes.auth import router as auth_router
from .routes.properties import router as properties_router
from .routes.bookings import router as bookings_router
from .routes.payments import router as payments_router
from .routes.reviews import router as reviews_router
from .sweepers import complete_elapsed_bookings

logger = logging.getLogger("rentify.api")
logging.getLogger("rentify").setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def _start_completion_sweeper(interval_seconds: int) -> None:
    """
    Launch a daemon thread that periodically concludes elapsed, paid bookings.

    This is deployment policy layered on top of the core; it only runs when
    COMPLETION_SWEEP_SECONDS is set to a positive value.
    """
    def _loop() -> None:
        while True:
            try:
                complete_elapsed_bookings()
            except Exception:
                # Keep the worker alive; the failure is logged and retried on the next interval
                logger.exception("completion sweep failed")
            time.sleep(interval_seconds)

    t = threading.Thread(target=_loop, name="booking-completion-sweeper", daemon=True)
    t.start()


# Parse CORS origins from a comma-separated env var.
# Note: '*' cannot be used with allow_credentials=True; we fall back to explicit localhost origins for dev.
def _parse_cors_origins(env_value: str | None) -> list[str]:
    default_dev_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    if not env_value:
        return default_dev_origins

    origins = [o.strip() for o in env_value.split(",") if o.strip()]
    if "*" in origins:
        return default_dev_origins

    return origins


app = FastAPI(title="Rentify API", version="0.1.0")
allow_list = _parse_cors_origins(os.getenv("CORS_ORIGINS"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RentifyError)
async def rentify_error_handler(request: Request, exc: RentifyError) -> JSONResponse:
    """Map core error kinds to JSON responses; storage failures are logged at ERROR upstream."""
    if exc.status_code < 500:
        logger.warning(
            "request.rejected",
            extra={"path": request.url.path, "kind": exc.kind, "detail": exc.detail},
        )
    headers = {}
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": exc.kind},
        headers=headers or None,
    )


@app.on_event("startup")
def on_startup() -> None:
    # For local SQLite, auto-create tables; production DBs rely on Alembic migrations.
    if os.getenv("DATABASE_URL", "sqlite:///./data.db").startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    interval = int(os.getenv("COMPLETION_SWEEP_SECONDS", "0"))
    if interval > 0:
        _start_completion_sweeper(interval_seconds=interval)


# Simple liveness endpoint for container orchestrators and uptime checks
@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(auth_router, prefix="", tags=["auth"])
app.include_router(properties_router, prefix="/api/v1", tags=["properties"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])
app.include_router(payments_router, prefix="/api/v1", tags=["payments"])
app.include_router(reviews_router, prefix="/api/v1", tags=["reviews"])
