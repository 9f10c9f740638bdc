"""
Vertex AI model calls used by the image pipeline, via google-genai.

Every call is a single attempt. Transport and API failures are re-raised as
``UpstreamError`` / ``DeadlineExceeded`` so the pipeline can decide what is
fatal and what degrades.
"""
import json
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from giconnect.constants import INPAINT_PROMPT, VISION_PROMPT_TEMPLATE
from giconnect.errors import DeadlineExceeded, UpstreamError, truncate_detail

logger = logging.getLogger(__name__)

_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def parse_metadata_json(text: str | None) -> dict[str, Any]:
    """Parse the vision model's JSON answer, tolerating prose around it.

    Returns an empty dict when nothing parsable is found.
    """
    if not text:
        return {}
    candidates = [text]
    match = _JSON_OBJECT_PATTERN.search(text)
    if match:
        candidates.append(match.group(0))
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    logger.warning(f"Vision output is not a JSON object: {truncate_detail(text, 200)!r}")
    return {}


@asynccontextmanager
async def _model_call(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except genai_errors.APIError as e:
        logger.error(f"{operation} failed: code={e.code} message={truncate_detail(str(e.message))}")
        raise UpstreamError(f"{operation} failed", downstream_status=e.code, detail=str(e.message)) from None
    except httpx.TimeoutException:
        logger.error(f"{operation} timed out")
        raise DeadlineExceeded(f"{operation} timed out") from None
    except httpx.HTTPError as e:
        logger.error(f"{operation} transport error: {type(e).__name__}")
        raise UpstreamError(f"{operation} failed: {type(e).__name__}") from None


def _image_bytes(generated: list[types.GeneratedImage] | None) -> list[bytes]:
    images = []
    for item in generated or []:
        if item.image and item.image.image_bytes:
            images.append(item.image.image_bytes)
        elif item.rai_filtered_reason:
            logger.warning(f"Generated image filtered: {item.rai_filtered_reason}")
    return images


class VertexImageModels:
    """Vision, generation and editing models behind one Vertex AI client."""

    def __init__(
        self,
        client: genai.Client,
        vision_model: str,
        image_model: str,
        edit_model: str,
    ):
        self._client = client
        self._vision_model = vision_model
        self._image_model = image_model
        self._edit_model = edit_model

    async def extract_metadata(self, image: bytes, mime_type: str, product_name: str) -> dict[str, Any]:
        """Ask the vision model for product metadata as a JSON object."""
        async with _model_call("vision extraction"):
            response = await self._client.aio.models.generate_content(
                model=self._vision_model,
                contents=[
                    VISION_PROMPT_TEMPLATE.format(product_name=product_name),
                    types.Part.from_bytes(data=image, mime_type=mime_type),
                ],
                config=types.GenerateContentConfig(
                    temperature=0.2,
                    max_output_tokens=512,
                    response_mime_type="application/json",
                ),
            )
        return parse_metadata_json(response.text)

    async def text_to_image(self, prompt: str, count: int) -> list[bytes]:
        async with _model_call("text-to-image generation"):
            response = await self._client.aio.models.generate_images(
                model=self._image_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=count,
                    aspect_ratio="1:1",
                    output_mime_type="image/png",
                ),
            )
        return _image_bytes(response.generated_images)

    async def image_to_image(self, image: bytes, prompt: str, count: int) -> list[bytes]:
        """Generate ``count`` variants conditioned on the source image."""
        reference = types.RawReferenceImage(
            reference_id=1,
            reference_image=types.Image(image_bytes=image),
        )
        async with _model_call("image-to-image generation"):
            response = await self._client.aio.models.edit_image(
                model=self._edit_model,
                prompt=prompt,
                reference_images=[reference],
                config=types.EditImageConfig(
                    edit_mode=types.EditMode.EDIT_MODE_DEFAULT,
                    number_of_images=count,
                    output_mime_type="image/png",
                ),
            )
        return _image_bytes(response.generated_images)

    async def inpaint(self, image: bytes, prompt: str = INPAINT_PROMPT) -> bytes:
        """Repaint the background of ``image``, keeping the product.

        Raises:
            UpstreamError: If the model errors or returns no image
        """
        references = [
            types.RawReferenceImage(
                reference_id=1,
                reference_image=types.Image(image_bytes=image),
            ),
            types.MaskReferenceImage(
                reference_id=2,
                config=types.MaskReferenceConfig(
                    mask_mode=types.MaskReferenceMode.MASK_MODE_BACKGROUND,
                    mask_dilation=0.0,
                ),
            ),
        ]
        async with _model_call("inpainting"):
            response = await self._client.aio.models.edit_image(
                model=self._edit_model,
                prompt=prompt,
                reference_images=references,
                config=types.EditImageConfig(
                    edit_mode=types.EditMode.EDIT_MODE_BGSWAP,
                    number_of_images=1,
                    output_mime_type="image/png",
                ),
            )
        images = _image_bytes(response.generated_images)
        if not images:
            raise UpstreamError("inpainting returned no image")
        return images[0]
