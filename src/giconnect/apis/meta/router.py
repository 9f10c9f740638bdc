import logging
import httpx
from fastapi import APIRouter, Response, Request, status

from giconnect.apis.meta.models import HealthCheck, StatusChecks, StatusCheckValue
from giconnect.apis.meta.status import StatusCheck, status_check
from giconnect.errors import ConfigError
from giconnect.lifespan import ServiceDependencies
from giconnect.warehouse.credentials import load_credential


logger = logging.getLogger(__name__)

meta_router = APIRouter(
    redirect_slashes=True,
    tags=["meta"]
)


@meta_router.get("/health", status_code=status.HTTP_200_OK, operation_id="health_check")
async def health_check() -> HealthCheck:
    """
    Simple health check for load balancers and Kubernetes probes.
    Returns 200 OK if service is running.
    """
    return HealthCheck(status=StatusCheckValue.OK)


def _deps(request: Request) -> ServiceDependencies:
    return request.app.state.deps


@status_check(name="bigquery-credential")
async def bigquery_credential_status(request: Request) -> dict:
    """Check that the service-account secret normalizes into a usable credential."""
    try:
        load_credential(_deps(request).settings.BQ_KEY_JSON)
        return {"status": StatusCheckValue.OK}
    except ConfigError as e:
        logger.error(f"BigQuery credential check error: {e.safe_message}")
        return {"status": StatusCheckValue.DOWN}


@status_check(name="image-models")
async def image_models_status(request: Request) -> dict:
    """Check if the Vertex AI image models are configured."""
    if _deps(request).image_models is None:
        return {"status": StatusCheckValue.DISABLED}
    return {"status": StatusCheckValue.OK}


@status_check(name="object-storage")
async def object_storage_status(request: Request) -> dict:
    """Check if the Supabase Storage bucket for generated images is configured."""
    deps = _deps(request)
    if deps.storage is None:
        return {"status": StatusCheckValue.DISABLED}
    return {"status": StatusCheckValue.OK}


@status_check(name="chat-backend", optional=True)
async def chat_backend_status(request: Request) -> dict:
    """Check if the conversational backend answers at all."""
    deps = _deps(request)
    url = deps.settings.CHATBOT_BACKEND_URL
    if not url:
        return {"status": StatusCheckValue.DISABLED}

    try:
        response = await deps.http_client.get(url)
        if response.status_code < 500:
            return {"status": StatusCheckValue.OK}
        else:
            return {"status": StatusCheckValue.DOWN}
    except httpx.HTTPError as e:
        logger.error(f"Chat backend connection error: {type(e).__name__}: {e}")
        return {"status": StatusCheckValue.DOWN}


@meta_router.get("/status", status_code=status.HTTP_200_OK, operation_id="status_check")
async def service_status(
    request: Request,
    response: Response,
) -> StatusChecks:
    """Status of every external dependency."""
    logger.debug('Requesting component statuses...')

    result = await StatusCheck.run(request)
    status_checks = StatusChecks(services=result)

    for service_name, service_status in status_checks.services.items():
        if StatusCheck.is_optional(service_name):
            continue

        if service_status.get("status") == StatusCheckValue.DOWN:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            logger.warning(f"Service {service_name} is DOWN - returning 503")
            break

    return status_checks
