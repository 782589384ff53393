import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env files at startup (later files override earlier):
# 1. project .env (project defaults)
# 2. project .env.local (local overrides)
project_root = Path(__file__).parent.parent
env_file = project_root / ".env"
env_local = project_root / ".env.local"

if env_file.exists():
    load_dotenv(env_file, override=True)
if env_local.exists():
    load_dotenv(env_local, override=True)

from .api import health, routines
from .core.config import get_settings
from .core.database import close_database, init_database
from .middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from .middleware.request_id import RequestIdMiddleware
from .services.routine_generator import RoutineGeneratorJob
from .utils.logging import setup_logging
from .utils.task_tracker import cancel_all_tasks, get_active_task_count
from .version import __version__

settings = get_settings()
setup_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)
logger = logging.getLogger(__name__)

routine_generator_job = RoutineGeneratorJob()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("TwoDo routines service starting up...")

    try:
        await init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    if settings.routine_generator_enabled:
        routine_generator_job.start()
    else:
        logger.info("Routine generator job disabled by configuration")

    yield

    logger.info("TwoDo routines service shutting down...")

    # The generator loop is a tracked task; cancelling tracked tasks stops it
    active_count = get_active_task_count()
    if active_count > 0:
        logger.info(f"Cancelling {active_count} active background tasks...")
        await cancel_all_tasks(timeout=5.0)

    await close_database()
    logger.info("Shutdown complete")


app = FastAPI(
    title="TwoDo Routines",
    description="Recurring routines, occurrence scheduling and streaks for couples",
    version=__version__,
    lifespan=lifespan,
)

# Outermost last: request id must be set before errors are handled
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(health.router)
app.include_router(routines.router)


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint for API info"""
    return {"message": "TwoDo Routines API", "version": __version__, "status": "running"}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run("twodo.main:app", host=host, port=port, reload=settings.debug, log_level="info")
