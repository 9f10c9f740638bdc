"""
Vendor dashboard reports over the orders table.

Table identifiers come from configuration only; vendor id and the date
window always travel as named query parameters.
"""
import asyncio
import logging

from giconnect.apis.analytics.models import AnalyticsRequest, AnalyticsResponse
from giconnect.lifespan import ServiceDependencies
from giconnect.warehouse.access import acquire_warehouse_access
from giconnect.warehouse.client import QueryParameter, qualified_table

logger = logging.getLogger(__name__)

_WINDOW_FILTER = (
    "WHERE vendor_id = @vendor_id "
    "AND occurred_at BETWEEN TIMESTAMP(@start_date) AND TIMESTAMP(@end_date)"
)

SALES_SUMMARY_SQL = """
SELECT DATE(occurred_at) AS date, SUM(amount) AS total_sales, COUNT(*) AS order_count
FROM {table}
{where}
GROUP BY date
ORDER BY date ASC
"""

TOP_PRODUCTS_SQL = """
SELECT product_id, COUNT(*) AS total_sold, SUM(amount) AS revenue
FROM {table}
{where}
GROUP BY product_id
ORDER BY revenue DESC
LIMIT 5
"""

ORDER_STATUS_SQL = """
SELECT status, COUNT(*) AS count
FROM {table}
{where}
GROUP BY status
"""

REGIONAL_SALES_SQL = """
SELECT region, SUM(amount) AS revenue
FROM {table}
{where}
GROUP BY region
ORDER BY revenue DESC
"""


class AnalyticsService:
    def __init__(self, deps: ServiceDependencies):
        self._settings = deps.settings
        self._token_issuer = deps.token_issuer
        self._warehouse = deps.warehouse

    async def report(self, request: AnalyticsRequest) -> AnalyticsResponse:
        """Run the four dashboard queries concurrently under one token."""
        access = await acquire_warehouse_access(self._settings, self._token_issuer)
        table = qualified_table(access.project_id, self._settings.BQ_DATASET, self._settings.BQ_ORDERS_TABLE)
        parameters = [
            QueryParameter("vendor_id", request.vendor_id),
            QueryParameter("start_date", request.start_date),
            QueryParameter("end_date", request.end_date),
        ]

        logger.info(
            f"Running analytics for vendor={request.vendor_id} "
            f"window={request.start_date}..{request.end_date}"
        )
        sales_summary, top_products, order_status, regional_sales = await asyncio.gather(
            *(
                self._warehouse.run_query(
                    access.token,
                    access.project_id,
                    sql.format(table=table, where=_WINDOW_FILTER),
                    parameters,
                )
                for sql in (SALES_SUMMARY_SQL, TOP_PRODUCTS_SQL, ORDER_STATUS_SQL, REGIONAL_SALES_SQL)
            )
        )
        return AnalyticsResponse(
            sales_summary=sales_summary,
            top_products=top_products,
            order_status_breakdown=order_status,
            regional_sales=regional_sales,
        )
