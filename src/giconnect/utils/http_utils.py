import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from giconnect.errors import DeadlineExceeded, UpstreamError, truncate_detail

logger = logging.getLogger(__name__)


@asynccontextmanager
async def upstream_call(
    operation: str,
    error_cls: type[Exception] = UpstreamError,
    failure_message: str | None = None,
) -> AsyncIterator[None]:
    """Map transport failures of an outbound call onto the error taxonomy.

    Timeouts become ``DeadlineExceeded``; any other transport error becomes
    ``error_cls``, carrying ``failure_message`` when one is given. HTTP status
    handling stays with the caller.
    """
    try:
        yield
    except httpx.TimeoutException:
        logger.error(f"{operation} timed out")
        raise DeadlineExceeded(f"{operation} timed out") from None
    except httpx.HTTPError as e:
        logger.error(f"{operation} transport error: {type(e).__name__}: {e}")
        raise error_cls(failure_message or f"{operation} failed: {type(e).__name__}") from None


def response_json(response: httpx.Response) -> dict:
    """Decode a JSON object body, returning an empty dict for anything else."""
    if not response.content:
        return {}
    try:
        payload = response.json()
    except ValueError:
        logger.warning(f"Non-JSON response body: {truncate_detail(response.text, 200)}")
        return {}
    return payload if isinstance(payload, dict) else {}
