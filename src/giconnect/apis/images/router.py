import logging
from fastapi import APIRouter, Depends
from typing import Annotated

from giconnect.apis.auth import worker_authorization
from giconnect.apis.images.models import OrchestrationRequest, OrchestrationResponse
from giconnect.apis.images.service import ImageOrchestrator
from giconnect.errors import ConfigError
from giconnect.lifespan import ServiceDependencies, get_dependencies

logger = logging.getLogger(__name__)

images_router = APIRouter(prefix="/images", tags=["Images"])


@images_router.post(
    "/orchestrate",
    response_model=OrchestrationResponse,
    summary="Generate enhanced listing images from a vendor photo",
    description=(
        "Extracts listing metadata from the vendor photo, generates text-to-image and "
        "image-to-image variants, replaces their backgrounds and uploads the results. "
        "Requires the `x-worker-secret` header."
    ),
    dependencies=[Depends(worker_authorization)],
)
async def orchestrate_images(
    request: OrchestrationRequest,
    deps: Annotated[ServiceDependencies, Depends(get_dependencies)],
) -> OrchestrationResponse:
    if deps.image_models is None:
        raise ConfigError("server misconfigured: image models unavailable")
    if deps.storage is None:
        raise ConfigError("server misconfigured: object storage unavailable")

    orchestrator = ImageOrchestrator(
        deps.http_client,
        deps.image_models,
        deps.storage,
        deps.tracer,
        max_images=deps.settings.MAX_GENERATED_IMAGES,
    )
    return await orchestrator.orchestrate(request)
