"""
Minimal BigQuery REST client: streaming row inserts and synchronous queries.

Query results come back exactly as the API encodes them (cell values are
strings); callers coerce types when they need arithmetic.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from giconnect.errors import (
    ConfigError,
    DeadlineExceeded,
    InsertError,
    UpstreamError,
    truncate_detail,
)
from giconnect.utils.http_utils import response_json, upstream_call

logger = logging.getLogger(__name__)

_PROJECT_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]+$")
_DATASET_TABLE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class QueryParameter:
    """A named, typed query parameter (``@name`` in standard SQL)."""

    name: str
    value: Any
    type: str = "STRING"

    def to_api(self) -> dict:
        return {
            "name": self.name,
            "parameterType": {"type": self.type},
            "parameterValue": {"value": None if self.value is None else str(self.value)},
        }


def qualified_table(project_id: str, dataset_id: str, table_id: str) -> str:
    """Backtick-quoted table reference built only from validated identifiers."""
    if not _PROJECT_PATTERN.match(project_id or ""):
        raise ConfigError("invalid BigQuery project id")
    for identifier in (dataset_id, table_id):
        if not _DATASET_TABLE_PATTERN.match(identifier or ""):
            raise ConfigError("invalid BigQuery dataset or table id")
    return f"`{project_id}.{dataset_id}.{table_id}`"


def parse_query_rows(payload: dict) -> list[dict[str, Any]]:
    """Map the column-oriented query response onto one dict per row.

    ``schema.fields[i].name`` names the value at ``rows[n].f[i].v``.
    """
    rows = payload.get("rows") or []
    fields = (payload.get("schema") or {}).get("fields") or []
    if not rows or not fields:
        return []

    names = [field.get("name") for field in fields]
    parsed = []
    for row in rows:
        cells = row.get("f") or []
        parsed.append({name: cell.get("v") for name, cell in zip(names, cells)})
    return parsed


class WarehouseClient:
    """Row insertion and query execution against the BigQuery v2 REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://bigquery.googleapis.com/bigquery/v2",
        query_timeout_ms: int = 30000,
    ):
        self._http_client = http_client
        self._base_url = base_url.rstrip("/")
        self._query_timeout_ms = query_timeout_ms

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def insert_rows(
        self,
        token: str,
        project_id: str,
        dataset_id: str,
        table_id: str,
        rows: Sequence[dict[str, Any]],
    ) -> dict:
        """Append ``rows`` to a table through ``insertAll``.

        Returns:
            The decoded insert response (``{}`` for an empty body)

        Raises:
            InsertError: Non-2xx status or a non-empty ``insertErrors`` list
        """
        qualified_table(project_id, dataset_id, table_id)
        url = f"{self._base_url}/projects/{project_id}/datasets/{dataset_id}/tables/{table_id}/insertAll"
        body = {
            "kind": "bigquery#tableDataInsertAllRequest",
            "rows": [{"json": row} for row in rows],
        }

        async with upstream_call("BigQuery insert", error_cls=InsertError):
            response = await self._http_client.post(url, json=body, headers=self._headers(token))

        if not response.is_success:
            logger.error(
                f"BigQuery insert failed status={response.status_code} "
                f"body={truncate_detail(response.text, 1000)}"
            )
            raise InsertError("BigQuery insert failed", downstream_status=response.status_code, detail=response.text)

        result = response_json(response)
        insert_errors = result.get("insertErrors")
        if insert_errors:
            logger.error(f"BigQuery insertErrors: {truncate_detail(str(insert_errors), 1000)}")
            raise InsertError("BigQuery insert errors", detail=str(insert_errors))

        logger.info(f"Inserted {len(rows)} row(s) into {dataset_id}.{table_id}")
        return result

    async def run_query(
        self,
        token: str,
        project_id: str,
        query: str,
        parameters: Sequence[QueryParameter] = (),
    ) -> list[dict[str, Any]]:
        """Run a standard-SQL query and return its rows as dicts.

        Raises:
            UpstreamError: Non-2xx status from the query endpoint
            DeadlineExceeded: The job did not complete within the query timeout
        """
        if not _PROJECT_PATTERN.match(project_id or ""):
            raise ConfigError("invalid BigQuery project id")
        url = f"{self._base_url}/projects/{project_id}/queries"
        body: dict[str, Any] = {
            "query": query,
            "useLegacySql": False,
            "timeoutMs": self._query_timeout_ms,
        }
        if parameters:
            body["parameterMode"] = "NAMED"
            body["queryParameters"] = [parameter.to_api() for parameter in parameters]

        async with upstream_call("BigQuery query"):
            response = await self._http_client.post(url, json=body, headers=self._headers(token))

        if not response.is_success:
            logger.error(
                f"BigQuery query failed status={response.status_code} "
                f"body={truncate_detail(response.text, 1000)}"
            )
            raise UpstreamError("BigQuery query failed", downstream_status=response.status_code, detail=response.text)

        payload = response_json(response)
        if payload.get("jobComplete") is False:
            raise DeadlineExceeded("BigQuery query did not complete in time")
        return parse_query_rows(payload)
