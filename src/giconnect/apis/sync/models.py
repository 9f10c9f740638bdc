from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class _SyncRow(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    def to_row(self) -> dict[str, Any]:
        """Row exactly as it is sent to ``insertAll``."""
        return self.model_dump(mode="json", by_alias=False)


class EventRequest(_SyncRow):
    """Storefront interaction event (view, add-to-cart, purchase...)."""

    event_id: str = Field(min_length=1, examples=["e1"])
    event_type: str = Field(min_length=1, examples=["view"])
    vendor_id: str = Field(min_length=1, examples=["v1"])
    occurred_at: datetime = Field(examples=["2024-01-01T00:00:00Z"])

    product_id: str | None = None
    order_id: str | None = None
    user_id: str | None = None
    region: str | None = None
    amount: float | None = None

    @field_serializer("occurred_at")
    def serialize_occurred_at(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_row(self) -> dict[str, Any]:
        # optional attributes are only sent when present
        return {key: value for key, value in super().to_row().items() if value is not None}


class OrderRequest(_SyncRow):
    """Placed order. ``timestamp`` lands in the partition column ``occurred_at``."""

    vendor_id: str = Field(min_length=1, examples=["v1"])
    order_id: str = Field(min_length=1, examples=["o-1001"])
    product_id: str = Field(min_length=1, examples=["p-42"])
    amount: float = Field(examples=[1499.0])
    status: str = Field(min_length=1, examples=["placed"])
    region: str = Field(min_length=1, examples=["Kashmir"])
    occurred_at: datetime = Field(validation_alias="timestamp", examples=["2024-01-01T10:30:00Z"])

    @field_serializer("occurred_at")
    def serialize_occurred_at(self, value: datetime) -> str:
        return format_timestamp(value)


class ProductRequest(_SyncRow):
    """Product listing row; everything but ``vendor_id`` and ``name`` is optional."""

    vendor_id: str = Field(min_length=1, examples=["v1"])
    name: str = Field(min_length=1, examples=["Pashmina Shawl"])
    description: str | None = None
    price: float | None = None
    stock: int = 0
    region: str | None = None
    location: str | None = None
    category: str | None = None
    maker_id: str | None = None
    gi_certificate_url: str | None = None
    generated_images: list[str] = Field(default_factory=list)

    @field_validator("stock", mode="before")
    @classmethod
    def default_stock(cls, value):
        return 0 if value is None else value

    @field_validator("generated_images", mode="before")
    @classmethod
    def default_generated_images(cls, value):
        return [] if value is None else value


class SyncAck(BaseModel):
    status: str = "ok"


class OrderSyncResponse(BaseModel):
    status: str = "ok"
    ok: bool = True
    result: dict[str, Any] = Field(default_factory=dict, description="Raw insertAll response")
