from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AnalyticsRequest(BaseModel):
    """Date window and vendor for the dashboard reports.

    ``vendorId`` is accepted as the storefront sends it; ``reportType`` is
    ignored since every report is always returned.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)

    start_date: str = Field(
        min_length=1,
        alias="startDate",
        description="Inclusive window start, any BigQuery TIMESTAMP literal",
        examples=["2024-01-01"],
    )
    end_date: str = Field(
        min_length=1,
        alias="endDate",
        description="Inclusive window end",
        examples=["2024-01-31T23:59:59Z"],
    )
    vendor_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("vendor_id", "vendorId"),
        examples=["v1"],
    )


class AnalyticsResponse(BaseModel):
    """Query rows exactly as returned by the warehouse; cell values are strings."""

    status: str = "ok"
    sales_summary: list[dict[str, Any]] = Field(default_factory=list)
    top_products: list[dict[str, Any]] = Field(default_factory=list)
    order_status_breakdown: list[dict[str, Any]] = Field(default_factory=list)
    regional_sales: list[dict[str, Any]] = Field(default_factory=list)
