"""
FastAPI application factory for the SmartForm assistant.

Creates and configures the FastAPI app, loads the form schema and
configuration, initializes the LLM client, session store, LangGraph,
and routes.

Run with:
    uvicorn smartform.api.app:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smartform.agent.config import AssistantConfig
from smartform.agent.graph import compile_graph
from smartform.agent.llm_client import LLMClient
from smartform.api.routes import configure_routes, router
from smartform.core.credentials import CredentialStore
from smartform.core.schema import FormSchema, load_form_schema
from smartform.core.session import SessionStore

# Load environment variables from .env
load_dotenv()

# Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    config: AssistantConfig | None = None,
    llm_client: LLMClient | None = None,
    schema: FormSchema | None = None,
    credentials: CredentialStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Every dependency may be passed in (tests do); anything omitted is
    built from the environment.
    """
    config = config or AssistantConfig.from_env()
    schema = schema or load_form_schema()
    credentials = credentials or CredentialStore(config.credentials_path)
    llm_client = llm_client or LLMClient(config, credentials=credentials)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await llm_client.aclose()
        logger.info("LLM client closed")

    application = FastAPI(
        title="SmartForm Assistant",
        description="Conversational assistant for the computer equipment borrowing form",
        version="2.0.0",
        lifespan=lifespan,
    )

    # CORS: allow all origins in development
    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Compile the LangGraph state machine (once, shared across all sessions)
    graph = compile_graph()
    logger.info("LangGraph compiled successfully")

    session_timeout = int(os.getenv("SESSION_TIMEOUT_SECONDS", "1800"))
    session_store = SessionStore(timeout_seconds=session_timeout)

    configure_routes(session_store, graph, schema, config, llm_client, credentials)
    application.include_router(router, prefix="/api")

    if not llm_client.has_credential():
        if config.production:
            logger.error("No LLM API key configured; LLM-dependent requests will fail")
        else:
            logger.warning("No LLM API key configured; set one via POST /api/credentials")

    logger.info("LLM endpoint: %s (model %s)", config.api_endpoint, config.model)
    logger.info("Session timeout: %d seconds", session_timeout)

    return application


# Create the app instance (used by uvicorn)
app = create_app()
