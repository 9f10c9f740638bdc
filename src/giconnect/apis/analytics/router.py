from fastapi import APIRouter, Depends
from typing import Annotated

from giconnect.apis.analytics.models import AnalyticsRequest, AnalyticsResponse
from giconnect.apis.analytics.service import AnalyticsService
from giconnect.lifespan import ServiceDependencies, get_dependencies

analytics_router = APIRouter(prefix="/analytics", tags=["Analytics"])


@analytics_router.post(
    "",
    response_model=AnalyticsResponse,
    summary="Sales reports for one vendor over a date window",
    description=(
        "Returns the daily sales summary, top five products by revenue, "
        "order status breakdown and regional sales."
    ),
)
async def vendor_analytics(
    request: AnalyticsRequest,
    deps: Annotated[ServiceDependencies, Depends(get_dependencies)],
) -> AnalyticsResponse:
    return await AnalyticsService(deps).report(request)
