import hmac
import logging
from fastapi import Depends, Header
from typing import Annotated, Optional

from giconnect.constants import PipelineStage
from giconnect.errors import UnauthorizedError
from giconnect.lifespan import ServiceDependencies, get_dependencies

logger = logging.getLogger(__name__)


def _secret_matches(provided: Optional[str], expected: str) -> bool:
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def worker_authorization(
    deps: Annotated[ServiceDependencies, Depends(get_dependencies)],
    x_worker_secret: Annotated[Optional[str], Header()] = None,
) -> None:
    """
    Shared-secret check for the image worker.

    An unset ``WORKER_SHARED_SECRET`` rejects every caller rather than
    letting everyone through.
    """
    with deps.tracer.start_as_current_observation(
        as_type="span", name=PipelineStage.AUTH_CHECK.value
    ) as span:
        authorized = _secret_matches(x_worker_secret, deps.settings.WORKER_SHARED_SECRET)
        span.update(output={"authorized": authorized})

    if not authorized:
        logger.warning("Rejected image worker call: missing or mismatched shared secret")
        raise UnauthorizedError("unauthorized")
