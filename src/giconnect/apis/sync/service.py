import logging
from typing import Any

from giconnect.config import ApiConfig
from giconnect.constants import SyncVariant
from giconnect.lifespan import ServiceDependencies
from giconnect.warehouse.access import acquire_warehouse_access

logger = logging.getLogger(__name__)


def table_for(settings: ApiConfig, variant: SyncVariant) -> str:
    return {
        SyncVariant.EVENT: settings.BQ_EVENTS_TABLE,
        SyncVariant.ORDER: settings.BQ_ORDERS_TABLE,
        SyncVariant.PRODUCT: settings.BQ_PRODUCTS_TABLE,
    }[variant]


class SyncService:
    """Appends one validated row to the warehouse table of its variant."""

    def __init__(self, deps: ServiceDependencies):
        self._settings = deps.settings
        self._token_issuer = deps.token_issuer
        self._warehouse = deps.warehouse

    async def insert(self, variant: SyncVariant, row: dict[str, Any]) -> dict:
        """
        Mint a token and insert ``row`` with a single ``insertAll`` call.

        Returns:
            The decoded insert response

        Raises:
            ConfigError: Credential or project configuration is unusable
            TokenExchangeError: The token endpoint rejected the assertion
            InsertError: The warehouse rejected the row
        """
        access = await acquire_warehouse_access(self._settings, self._token_issuer)
        table = table_for(self._settings, variant)
        logger.info(f"Syncing {variant.value} row into {self._settings.BQ_DATASET}.{table}")
        return await self._warehouse.insert_rows(
            access.token,
            access.project_id,
            self._settings.BQ_DATASET,
            table,
            [row],
        )
