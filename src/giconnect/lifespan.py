import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import FastAPI, Request
from google import genai
from google.genai import types

from giconnect.apis.images.generation import VertexImageModels
from giconnect.config import ApiConfig
from giconnect.storage import SupabaseStorage
from giconnect.utils.tracing_utils import LangfuseProvider
from giconnect.warehouse.client import WarehouseClient
from giconnect.warehouse.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)


@dataclass
class ServiceDependencies:
    """Collaborators built once at startup and shared read-only by handlers."""

    settings: ApiConfig
    http_client: httpx.AsyncClient
    token_issuer: TokenIssuer
    warehouse: WarehouseClient
    image_models: VertexImageModels | None
    storage: SupabaseStorage | None
    tracer: Any


def build_dependencies(
    settings: ApiConfig,
    http_client: httpx.AsyncClient | None = None,
    genai_client: Any = None,
    tracer: Any = None,
) -> ServiceDependencies:
    """Construct every collaborator from settings; any of them can be injected."""
    if http_client is None:
        http_client = httpx.AsyncClient(verify=settings.VERIFY_SSL, timeout=settings.DEFAULT_TIMEOUT)

    if genai_client is None and settings.VERTEX_PROJECT_ID:
        genai_client = genai.Client(
            vertexai=True,
            project=settings.VERTEX_PROJECT_ID,
            location=settings.VERTEX_LOCATION,
            http_options=types.HttpOptions(timeout=int(settings.DEFAULT_TIMEOUT * 1000)),
        )
        logger.info(f"Vertex AI client ready (project={settings.VERTEX_PROJECT_ID}, location={settings.VERTEX_LOCATION})")

    image_models = None
    if genai_client is not None:
        image_models = VertexImageModels(
            genai_client,
            vision_model=settings.VISION_MODEL_NAME,
            image_model=settings.IMAGE_MODEL_NAME,
            edit_model=settings.EDIT_MODEL_NAME,
        )
    else:
        logger.warning("VERTEX_PROJECT_ID not set; image orchestration is disabled")

    storage = None
    if settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY:
        storage = SupabaseStorage(
            http_client,
            base_url=settings.SUPABASE_URL,
            service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
            bucket=settings.SUPABASE_BUCKET,
        )
    else:
        logger.warning("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not set; image upload is disabled")

    return ServiceDependencies(
        settings=settings,
        http_client=http_client,
        token_issuer=TokenIssuer(http_client),
        warehouse=WarehouseClient(
            http_client,
            base_url=settings.BQ_API_BASE_URL,
            query_timeout_ms=int(settings.DEFAULT_TIMEOUT * 1000),
        ),
        image_models=image_models,
        storage=storage,
        tracer=tracer if tracer is not None else LangfuseProvider.get_client(settings),
    )


def get_dependencies(request: Request) -> ServiceDependencies:
    return request.app.state.deps


async def run_startup_dependencies(app: FastAPI) -> None:
    """Initialize all application dependencies at startup."""
    settings: ApiConfig = app.state.settings
    logger.info(f"Starting {settings.APP_NAME} API")

    if not settings.BQ_KEY_JSON:
        logger.error("BQ_KEY_JSON not set; warehouse endpoints will answer 500")
    if not settings.WORKER_SHARED_SECRET:
        logger.error("WORKER_SHARED_SECRET not set; image orchestration will reject every request")
    if not settings.CHATBOT_BACKEND_URL:
        logger.warning("CHATBOT_BACKEND_URL not set; chat relay is disabled")

    app.state.deps = build_dependencies(settings)
    logger.info("All systems initialized successfully")


async def shutdown_dependencies(app: FastAPI) -> None:
    """Cleanup all application dependencies at shutdown."""
    logger.info("Shutting down API...")
    deps: ServiceDependencies | None = getattr(app.state, "deps", None)
    if deps is None:
        return

    try:
        await deps.http_client.aclose()
        logger.info("HTTP client closed")
        deps.tracer.flush()
    except Exception as e:
        logger.error(f"Error during shutdown cleanup: {e}", exc_info=True)
    finally:
        app.state.deps = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan (startup and shutdown)."""
    try:
        await run_startup_dependencies(app)
        yield
        await shutdown_dependencies(app)

    except Exception as e:
        logger.error(f"Error in lifespan management: {e}", exc_info=True)
        raise
