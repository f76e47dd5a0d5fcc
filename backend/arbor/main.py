"""
Arbor - multi-tenant work-breakdown service with integrity-checked task hierarchies.
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager

from arbor.database import init_db
from arbor.routes import tasks, projects
from arbor.exceptions import register_exception_handlers
from arbor.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting Arbor API...")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down Arbor API...")


app = FastAPI(
    title="Arbor",
    description="Multi-tenant work-breakdown service with integrity-checked task hierarchies",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(projects.router, prefix="/projects", tags=["Projects"])
app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
