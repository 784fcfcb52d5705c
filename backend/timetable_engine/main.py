from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timetable_engine.api.routes import blocks, conflicts, directory, health, substitutions, timetable
from timetable_engine.core.config import get_settings
from timetable_engine.core.exceptions import AppError
from timetable_engine.db.base import Base
from timetable_engine.db.session import engine as db_engine
import timetable_engine.models  # noqa: F401

settings = get_settings()

logging.getLogger("timetable_engine").setLevel(settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=db_engine)
    # Loaded lazily from the request's session on first use.
    app.state.timetable_engine = None
    logger.info("%s started", settings.project_name)
    yield
    app.state.timetable_engine = None


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(directory.router, prefix=f"{settings.api_prefix}/directory", tags=["directory"])
app.include_router(timetable.router, prefix=f"{settings.api_prefix}/timetable", tags=["timetable"])
app.include_router(conflicts.router, prefix=f"{settings.api_prefix}/conflicts", tags=["conflicts"])
app.include_router(blocks.router, prefix=f"{settings.api_prefix}/blocks", tags=["blocks"])
app.include_router(substitutions.router, prefix=f"{settings.api_prefix}/substitutions", tags=["substitutions"])
