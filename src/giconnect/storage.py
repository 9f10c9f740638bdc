import logging
from urllib.parse import quote

import httpx

from giconnect.errors import UpstreamError, truncate_detail
from giconnect.utils.http_utils import upstream_call

logger = logging.getLogger(__name__)


class SupabaseStorage:
    """Uploads objects to a Supabase Storage bucket over its REST API."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str, service_key: str, bucket: str):
        self._http_client = http_client
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._bucket = bucket

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{quote(path)}"

    async def upload(self, path: str, data: bytes, content_type: str = "image/png") -> str:
        """Store ``data`` at ``path`` (no overwrite) and return its public URL.

        Raises:
            UpstreamError: If the storage API rejects the upload
        """
        url = f"{self._base_url}/storage/v1/object/{self._bucket}/{quote(path)}"
        headers = {
            "Authorization": f"Bearer {self._service_key}",
            "apikey": self._service_key,
            "Content-Type": content_type,
            "x-upsert": "false",
        }

        async with upstream_call("storage upload"):
            response = await self._http_client.post(url, content=data, headers=headers)

        if not response.is_success:
            logger.error(f"Storage upload failed path={path} status={response.status_code} body={truncate_detail(response.text)}")
            raise UpstreamError("storage upload failed", downstream_status=response.status_code, detail=response.text)

        logger.debug(f"Uploaded {len(data)} bytes to {self._bucket}/{path}")
        return self.public_url(path)
