import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from mktdept.api.routes import router as api_router
from mktdept.core.config import get_settings
from mktdept.core.logging import configure_logging

configure_logging()
log = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    projects_dir = Path(settings.projects_dir)
    if not projects_dir.is_dir():
        log.warning("Projects directory %s does not exist, creating it", projects_dir)
        projects_dir.mkdir(parents=True, exist_ok=True)
    log.info("API server startup complete (projects: %s)", projects_dir.resolve())
    yield
    log.info("Shutting down API server...")


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan
)
app.include_router(api_router, prefix="/v1")
