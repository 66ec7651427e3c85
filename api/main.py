"""
FastAPI application entry point.

Startup builds the generative backend and the QueryService once and
stores them on app.state for dependency injection.

Run with:
    python -m api.main
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ai.llm_service import get_backend, get_langfuse_client
from config import API_HOST, API_PORT, DEBUG, LOG_LEVEL
from services.query_service import build_query_service
from api.routes.query import router as query_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build shared resources on startup, flush traces on shutdown."""
    logger.info("🚀 Starting Campus Query API...")

    backend = get_backend()
    app.state.backend = backend
    app.state.query_service = build_query_service(backend=backend)

    logger.info("✅ Startup complete")

    yield

    client = get_langfuse_client()
    if client is not None:
        client.flush()
    logger.info("Shutting down Campus Query API.")


app = FastAPI(
    title="Campus Query API",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(query_router)


if __name__ == "__main__":
    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=DEBUG)
