import logging
import threading
from langfuse import Langfuse
from typing import Optional

from giconnect.config import ApiConfig

logger = logging.getLogger(__name__)


class LangfuseSetupError(Exception):
    """Raised only when Langfuse is enabled but fails to work correctly."""


class LangfuseProvider:
    _instance: Optional[Langfuse] = None
    _lock = threading.Lock()

    @classmethod
    def get_client(cls, settings: ApiConfig) -> Langfuse:
        """
        Return the process-wide Langfuse client, creating it on first use.

        With tracing disabled the client is a no-op, so pipeline code can open
        spans unconditionally.
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls._initialize_client(settings)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None

    @staticmethod
    def _initialize_client(settings: ApiConfig) -> Langfuse:
        """
        Raises:
            LangfuseSetupError: Tracing is enabled but authentication fails
        """
        tracing_enabled = settings.LANGFUSE_TRACING_ENABLED

        client = Langfuse(
            public_key=settings.LANGFUSE_PUBLIC_KEY,
            secret_key=settings.LANGFUSE_SECRET_KEY,
            base_url=settings.LANGFUSE_BASE_URL,
            tracing_enabled=tracing_enabled,
        )

        if tracing_enabled:
            try:
                if not client.auth_check():
                    raise LangfuseSetupError(
                        "Langfuse authentication failed. Please verify LANGFUSE_PUBLIC_KEY "
                        "and LANGFUSE_SECRET_KEY."
                    )
                logger.info("Langfuse client initialized and authenticated.")
            except LangfuseSetupError:
                raise
            except Exception as e:
                logger.exception("Langfuse authentication check failed")
                raise LangfuseSetupError(f"Failed to verify Langfuse authentication: {e}") from e
        else:
            logger.debug("Langfuse tracing is disabled; spans are no-ops.")

        return client
