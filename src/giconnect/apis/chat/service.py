import logging
from dataclasses import dataclass

import httpx

from giconnect.errors import ConfigError
from giconnect.utils.http_utils import upstream_call

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class RelayedResponse:
    status_code: int
    body: bytes
    content_type: str


class ChatRelay:
    """Pass-through to the conversational backend.

    The body is forwarded byte for byte and the backend's status and body come
    back unchanged; fields such as ``message`` or ``conversation_id`` are the
    backend's business.
    """

    def __init__(self, http_client: httpx.AsyncClient, backend_url: str):
        self._http_client = http_client
        self._backend_url = backend_url

    async def forward(self, body: bytes) -> RelayedResponse:
        if not self._backend_url:
            raise ConfigError("server misconfigured: CHATBOT_BACKEND_URL missing")

        async with upstream_call("chat backend", failure_message="chat backend unreachable"):
            response = await self._http_client.post(
                self._backend_url,
                content=body,
                headers={"Content-Type": DEFAULT_CONTENT_TYPE},
            )

        logger.info(f"Chat backend answered {response.status_code} ({len(response.content)} bytes)")
        return RelayedResponse(
            status_code=response.status_code,
            body=response.content,
            content_type=response.headers.get("content-type", DEFAULT_CONTENT_TYPE),
        )
