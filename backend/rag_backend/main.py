"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from rich.logging import RichHandler

from rag_backend.config import settings
from rag_backend.dependencies import AppServices, get_services
from rag_backend.routers.documents import router as documents_router
from rag_backend.routers.query import router as query_router

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s - %(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=True, markup=False)],
        force=True,
    )
    for noisy in ("httpx", "httpcore", "qdrant_client"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    # Package loggers go to DEBUG with debug=True; third-party libs stay at INFO
    if debug:
        logging.getLogger("rag_backend").setLevel(logging.DEBUG)


configure_logging(settings.debug)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    services = AppServices.from_settings(settings)
    await services.startup()
    knowledge_chunks = await services.knowledge_store.count()
    if knowledge_chunks == 0:
        logger.warning(
            "Knowledge base '%s' is empty; run seed.py to load reference material",
            services.knowledge_store.collection,
        )
    app.state.services = services
    yield
    await services.shutdown()


app = FastAPI(
    title="Medical Document RAG",
    description="Question answering over uploaded medical documents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)

app.include_router(documents_router)
app.include_router(query_router)


@app.get("/health")
async def health_check(services: AppServices = Depends(get_services)) -> dict[str, str | int]:
    """Liveness plus the size of the reference partition."""
    return {
        "status": "healthy",
        "knowledge_chunks": await services.knowledge_store.count(),
    }
