import math
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, field_validator


class OrchestrationRequest(BaseModel):
    """Vendor image to build a product listing from."""

    image_url: str = Field(
        min_length=1,
        description="Publicly fetchable URL of the vendor's product photo",
        examples=["https://example.supabase.co/storage/v1/object/public/uploads/shawl.jpg"],
    )
    product_name: str = Field(
        min_length=1,
        description="Name the vendor gave the product",
        examples=["Pashmina Shawl"],
    )
    maker_id: str | None = Field(
        default=None,
        description="Artisan id used to key uploaded images; `anon` when absent"
    )

    @field_validator("image_url", "product_name")
    @classmethod
    def trim_whitespace(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Value cannot be blank.")
        return trimmed


class VisionMetadata(BaseModel):
    """Listing metadata extracted from the vendor photo."""

    product_name: str
    category: str = "Other"
    description: str = ""
    price: float = 0
    stock: int = 0
    image_prompt: str

    @classmethod
    def from_model_output(cls, parsed: dict[str, Any], product_name: str) -> "VisionMetadata":
        """Merge model output over defaults; unusable values fall back silently."""
        def pick(key: str, default):
            value = parsed.get(key)
            return default if value in (None, "") else value

        def number(key: str, cast, default):
            try:
                value = float(pick(key, default))
            except (TypeError, ValueError, OverflowError):
                return default
            return cast(value) if math.isfinite(value) else default

        name = str(pick("product_name", product_name))
        return cls(
            product_name=name,
            category=str(pick("category", "Other")),
            description=str(pick("description", "")),
            price=number("price", float, 0.0),
            stock=number("stock", int, 0),
            image_prompt=str(pick("image_prompt", f"{product_name} product photo")),
        )


class OrchestrationResponse(VisionMetadata):
    """Vision metadata plus the public URLs of every generated image."""

    generated_images: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class PartialDegradation:
    """One pipeline item that fell back to its unenhanced input."""

    index: int
    reason: str


@dataclass
class GeneratedImageSet:
    """Ordered image buffers plus the indices that skipped enhancement."""

    images: list[bytes] = field(default_factory=list)
    degraded: list[PartialDegradation] = field(default_factory=list)
