"""FastAPI application factory.

Wires the chat and collection routers, CORS for the separately served UI,
and a startup hook that prepares the answer provider and the default
collection before the first request.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docchat import __version__
from docchat.api.chat import router as chat_router
from docchat.api.collections import router as collections_router
from docchat.config import get_app_config
from docchat.providers import get_chat_api, get_collection_store
from docchat.streaming import get_session_registries

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Prepare shared services on startup and report on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    config = get_app_config()
    provider = get_chat_api()
    collections = get_collection_store().get_collections()
    logger.info(
        f"DocChat API ready: provider={type(provider).__name__}, "
        f"stream_speed={config.stream_speed}s, collections={len(collections)}"
    )
    yield
    logger.info(f"Shutting down DocChat API ({len(get_session_registries())} chat sessions served)")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    config = get_app_config()
    application = FastAPI(
        title="DocChat API",
        description=(
            "Chat over document collections. Answers arrive complete from the "
            "QA backend and are paced word by word over Server-Sent Events, "
            "with inline citations linking to source PDF excerpts."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials="*" not in config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    application.include_router(chat_router)
    application.include_router(collections_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "docchat"}

    return application


app = create_app()
