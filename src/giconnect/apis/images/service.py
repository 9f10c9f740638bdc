import asyncio
import logging
import time
from typing import Any

import httpx

from giconnect.apis.images.generation import VertexImageModels
from giconnect.apis.images.models import (
    GeneratedImageSet,
    OrchestrationRequest,
    OrchestrationResponse,
    PartialDegradation,
    VisionMetadata,
)
from giconnect.constants import PipelineStage
from giconnect.errors import UpstreamError
from giconnect.storage import SupabaseStorage
from giconnect.utils.http_utils import upstream_call

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_MIME_TYPE = "image/jpeg"


class ImageOrchestrator:
    """Turns one vendor photo into a set of enhanced, uploaded listing images.

    Stages run strictly in order: vision extraction, text-to-image,
    image-to-image, per-image inpainting, upload. A failure before upload
    aborts the request; an inpainting failure only degrades that image to its
    unenhanced original.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        models: VertexImageModels,
        storage: SupabaseStorage,
        tracer: Any,
        max_images: int,
    ):
        self._http_client = http_client
        self._models = models
        self._storage = storage
        self._tracer = tracer
        self._max_images = max_images

    async def orchestrate(self, request: OrchestrationRequest) -> OrchestrationResponse:
        logger.info(f"Starting image orchestration for product={request.product_name!r} maker={request.maker_id}")
        source, mime_type = await self._fetch_source_image(request.image_url)

        with self._tracer.start_as_current_observation(
            as_type="span", name=PipelineStage.VISION_EXTRACT.value, input={"product_name": request.product_name}
        ) as span:
            parsed = await self._models.extract_metadata(source, mime_type, request.product_name)
            vision = VisionMetadata.from_model_output(parsed, request.product_name)
            span.update(output=vision.model_dump())

        with self._tracer.start_as_current_observation(
            as_type="span", name=PipelineStage.TEXT2IMG.value, input=vision.image_prompt
        ) as span:
            text_images = await self._models.text_to_image(vision.image_prompt, self._max_images)
            span.update(output={"count": len(text_images)})

        with self._tracer.start_as_current_observation(
            as_type="span", name=PipelineStage.IMG2IMG.value, input=vision.image_prompt
        ) as span:
            conditioned_images = await self._models.image_to_image(source, vision.image_prompt, self._max_images)
            span.update(output={"count": len(conditioned_images)})

        with self._tracer.start_as_current_observation(
            as_type="span", name=PipelineStage.INPAINT.value
        ) as span:
            image_set = await self.enhance(text_images + conditioned_images)
            span.update(output={"count": len(image_set.images), "degraded": len(image_set.degraded)})

        with self._tracer.start_as_current_observation(
            as_type="span", name=PipelineStage.UPLOAD.value
        ) as span:
            urls = await self.upload(image_set, request.maker_id)
            span.update(output=urls)

        with self._tracer.start_as_current_observation(
            as_type="span", name=PipelineStage.RESPOND.value
        ) as span:
            response = OrchestrationResponse(**vision.model_dump(), generated_images=urls)
            span.update(output={"images": len(urls), "degraded": [item.index for item in image_set.degraded]})

        logger.info(
            f"Image orchestration finished: {len(urls)} image(s), "
            f"{len(image_set.degraded)} without enhancement"
        )
        return response

    async def _fetch_source_image(self, image_url: str) -> tuple[bytes, str]:
        async with upstream_call("vendor image fetch"):
            response = await self._http_client.get(image_url, follow_redirects=True)
        if not response.is_success:
            raise UpstreamError(f"failed to fetch vendor image: {response.status_code}", downstream_status=response.status_code)

        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not mime_type.startswith("image/"):
            mime_type = DEFAULT_SOURCE_MIME_TYPE
        return response.content, mime_type

    async def enhance(self, images: list[bytes]) -> GeneratedImageSet:
        """Inpaint every image concurrently, keeping input order.

        An image whose enhancement fails is kept as-is and recorded as a
        ``PartialDegradation``.
        """
        async def enhance_one(index: int, image: bytes) -> tuple[bytes, PartialDegradation | None]:
            try:
                return await self._models.inpaint(image), None
            except UpstreamError as e:
                logger.warning(f"Inpainting failed for image {index}, keeping original: {e.safe_message}")
                return image, PartialDegradation(index=index, reason=e.safe_message)
            except Exception as e:
                # SDK response parsing and credential refresh errors are not APIError
                logger.warning(f"Inpainting failed for image {index}, keeping original", exc_info=True)
                return image, PartialDegradation(index=index, reason=f"inpainting failed: {type(e).__name__}")

        results = await asyncio.gather(*(enhance_one(i, image) for i, image in enumerate(images)))

        image_set = GeneratedImageSet()
        for enhanced, degradation in results:
            image_set.images.append(enhanced)
            if degradation:
                image_set.degraded.append(degradation)
        return image_set

    async def upload(self, image_set: GeneratedImageSet, maker_id: str | None) -> list[str]:
        """Upload images in order under ``generated/<maker>/<timestamp>_<index>.png``."""
        timestamp_ms = int(time.time() * 1000)
        owner = maker_id or "anon"
        urls = []
        for index, image in enumerate(image_set.images):
            path = f"generated/{owner}/{timestamp_ms}_{index}.png"
            urls.append(await self._storage.upload(path, image, content_type="image/png"))
        return urls
