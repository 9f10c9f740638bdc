import logging
from fastapi import APIRouter, Depends
from typing import Annotated

from giconnect.apis.sync.models import (
    EventRequest,
    OrderRequest,
    OrderSyncResponse,
    ProductRequest,
    SyncAck,
)
from giconnect.apis.sync.service import SyncService
from giconnect.constants import SyncVariant
from giconnect.lifespan import ServiceDependencies, get_dependencies

logger = logging.getLogger(__name__)

sync_router = APIRouter(prefix="/sync", tags=["Sync"])


def get_sync_service(deps: Annotated[ServiceDependencies, Depends(get_dependencies)]) -> SyncService:
    return SyncService(deps)


@sync_router.post(
    "/events",
    response_model=SyncAck,
    summary="Append a storefront event to the warehouse",
)
async def sync_event(
    event: EventRequest,
    service: Annotated[SyncService, Depends(get_sync_service)],
) -> SyncAck:
    await service.insert(SyncVariant.EVENT, event.to_row())
    return SyncAck()


@sync_router.post(
    "/orders",
    response_model=OrderSyncResponse,
    summary="Append an order to the warehouse",
    description="The inbound `timestamp` is stored in the `occurred_at` partition column.",
)
async def sync_order(
    order: OrderRequest,
    service: Annotated[SyncService, Depends(get_sync_service)],
) -> OrderSyncResponse:
    result = await service.insert(SyncVariant.ORDER, order.to_row())
    return OrderSyncResponse(result=result)


@sync_router.post(
    "/products",
    summary="Append a product listing to the warehouse",
    description="Responds with the row exactly as inserted, defaults filled in.",
)
async def sync_product(
    product: ProductRequest,
    service: Annotated[SyncService, Depends(get_sync_service)],
) -> dict:
    row = product.to_row()
    await service.insert(SyncVariant.PRODUCT, row)
    return row
