import logging
import math
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from progress_engine import __version__
from progress_engine.config import get_settings
from progress_engine.exceptions import EngineError
from progress_engine.services.events import get_event_dispatcher, log_milestone_completed

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _create_tables() -> None:
    """Create missing tables; production deployments run Alembic instead."""
    from progress_engine.database import Base, engine
    from progress_engine import models  # noqa: F401  registers mappers

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.CREATE_TABLES_ON_STARTUP:
        _create_tables()

    get_event_dispatcher().subscribe(log_milestone_completed)
    yield
    get_event_dispatcher().unsubscribe(log_milestone_completed)


app = FastAPI(
    title=settings.APP_NAME,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    logger.info(
        "%s %s -> %d %s: %s",
        request.method, request.url.path, exc.status_code, exc.code, exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _json_safe_float(value: float) -> float | str:
    return value if math.isfinite(value) else str(value)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Rejected inputs are echoed back; NaN and Infinity have no JSON form
    errors = jsonable_encoder(exc.errors(), custom_encoder={float: _json_safe_float})
    logger.info(
        "%s %s -> 422 %d validation error(s)",
        request.method, request.url.path, len(errors),
    )
    return JSONResponse(status_code=422, content={"detail": errors})


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from progress_engine.routers import milestones  # noqa: E402

app.include_router(milestones.router, prefix=settings.API_PREFIX, tags=["Milestones"])

# Timers
from progress_engine.routers import time_tracking  # noqa: E402

app.include_router(
    time_tracking.router,
    prefix=f"{settings.API_PREFIX}/time-tracking",
    tags=["Time Tracking"],
)

# Progress, time summary and report export
from progress_engine.routers import progress  # noqa: E402

app.include_router(
    progress.router,
    prefix=f"{settings.API_PREFIX}/proposals",
    tags=["Progress"],
)
