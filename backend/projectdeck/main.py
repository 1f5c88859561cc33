"""
ProjectDeck - personal project dashboard backend with text-to-speech narration.
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager

from projectdeck.database import dispose_db, init_db
from projectdeck.routes import projects, todos, tts
from projectdeck.exceptions import register_exception_handlers
from projectdeck.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting ProjectDeck API...")
    await init_db()
    logger.info("Database initialized")
    yield
    await tts.close_speech_client()
    await dispose_db()
    logger.info("Shutting down ProjectDeck API...")


app = FastAPI(
    title="ProjectDeck",
    description="Personal project dashboard with filtering, todos and narration",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(projects.router, prefix="/projects", tags=["Projects"])
app.include_router(todos.router, prefix="/todos", tags=["Todos"])
app.include_router(tts.router, prefix="/tts", tags=["Narration"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
