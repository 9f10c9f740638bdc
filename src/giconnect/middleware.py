import logging
import time
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from asgi_correlation_id.middleware import CorrelationIdMiddleware

from giconnect.config import ApiConfig
from giconnect.constants import CORS_ALLOW_HEADERS, CORS_ALLOW_METHODS

logger = logging.getLogger(__name__)

CORS_MAX_AGE_SECONDS = 86400


class ClientIPLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log client IP, user agent, request path and duration."""

    async def dispatch(self, request: Request, call_next):
        client_ip = self._get_real_client_ip(request)
        user_agent = request.headers.get("user-agent", "unknown")
        start = time.perf_counter()

        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"client_ip={client_ip} "
            f"user_agent={user_agent} "
            f"method={request.method} "
            f"path={request.url.path} "
            f"status={response.status_code} "
            f"duration_ms={duration_ms:.1f}"
        )
        return response

    def _get_real_client_ip(self, request: Request) -> str:
        """Extract the real client IP from forwarded headers."""
        true_client_ip = request.headers.get("true-client-ip")
        if true_client_ip:
            return true_client_ip.strip()

        # First entry is the original client
        forwarded_for_ips = request.headers.get("x-forwarded-for")
        if forwarded_for_ips:
            return forwarded_for_ips.split(",")[0].strip()

        for header in ["x-real-ip", "x-client-ip"]:
            client_ip = request.headers.get(header)
            if client_ip:
                return client_ip.strip()

        return request.client.host if request.client else "unknown"


def configure_middleware(api: FastAPI, settings: ApiConfig) -> FastAPI:
    api.add_middleware(ClientIPLoggingMiddleware)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        max_age=CORS_MAX_AGE_SECONDS,
    )

    api.add_middleware(CorrelationIdMiddleware)

    logger.info(f"Middleware configured (CORS origins: {', '.join(settings.cors_origins) or 'none'})")

    return api
