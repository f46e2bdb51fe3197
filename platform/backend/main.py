"""Agent Studio: FastAPI application."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agents.service import AgentStore
from chat.service import ConversationLocks
from config import get_settings
from credentials.service import CredentialStore
from exceptions import register_exception_handlers
from tools.service import load_catalog

from agents.router import models_router
from agents.router import router as agents_router
from chat.router import router as chat_router
from credentials.router import router as credentials_router
from tools.router import router as tools_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle: wires the agent store and credentials."""
    settings = get_settings()
    load_catalog()

    app.state.agent_store = AgentStore(
        settings.agent_store_path, default_model=settings.default_model
    )
    app.state.credentials = CredentialStore(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout_seconds,
    )
    app.state.conversation_locks = ConversationLocks()
    logger.info("Agent store at %s", settings.agent_store_path)
    if not app.state.credentials.has_credential():
        logger.info("No OpenAI API key configured yet")

    yield

    await app.state.credentials.aclose()
    logger.info("Agent Studio shutting down")


app = FastAPI(
    title="Agent Studio",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
register_exception_handlers(app)

# API routers
app.include_router(tools_router)
app.include_router(models_router)
app.include_router(agents_router)
app.include_router(credentials_router)
app.include_router(chat_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=False)
