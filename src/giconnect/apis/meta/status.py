import inspect
import logging
import time
from typing import Awaitable, Callable

from fastapi import Request

from giconnect.apis.meta.models import StatusCheckValue

logger = logging.getLogger(__name__)


class StatusCheck:
    """Registry for status check functions."""

    _checks: dict[str, Callable[..., Awaitable[dict]]] = {}
    _optional: set[str] = set()

    @classmethod
    def register(cls, name: str, func: Callable[..., Awaitable[dict]], optional: bool = False):
        """Register a status check function."""
        cls._checks[name] = func
        if optional:
            cls._optional.add(name)
        logger.debug(f"Registered status check: {name}")

    @classmethod
    def is_optional(cls, name: str) -> bool:
        return name in cls._optional

    @classmethod
    async def run(cls, request: Request | None = None) -> dict:
        """Run all registered status checks."""
        results = {}

        for name, check_func in cls._checks.items():
            start = time.perf_counter()
            try:
                # Pass request if check function needs it
                if "request" in inspect.signature(check_func).parameters and request is not None:
                    check_result = await check_func(request)
                else:
                    check_result = await check_func()
                status = check_result.get("status", StatusCheckValue.DOWN)
            except Exception as e:
                logger.error(f"Status check failed for {name}: {e}")
                status = StatusCheckValue.DOWN

            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.debug(f"Status check {name}={status} in {elapsed_ms:.1f}ms")
            results[name] = {"status": status}

        return results


def status_check(name: str, optional: bool = False):
    """
    Decorator to register a status check function.

    Usage:
        @status_check(name="my_service")
        async def my_service_status() -> dict:
            return {"status": StatusCheckValue.OK}

    A check registered with ``optional=True`` never turns ``/status`` into a 503.
    """
    def decorator(func: Callable[..., Awaitable[dict]]):
        StatusCheck.register(name, func, optional=optional)
        return func
    return decorator
