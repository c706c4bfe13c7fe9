"""HTTP object storage client"""

import logging
import httpx
from src.app.services.storage_service import StorageService

logger = logging.getLogger(__name__)


class HttpStorageService(StorageService):
    """
    Object storage over plain HTTP

    Objects are PUT to ``{upload_url}/{key}`` and served from
    ``{public_url}/{key}``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        upload_url: str,
        public_url: str,
        api_key: str = "",
        timeout: float = 60.0,
    ):
        self.http_client = http_client
        self.upload_url = upload_url.rstrip("/")
        self.public_url = public_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def download(self, url: str) -> bytes:
        response = await self.http_client.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    async def upload(self, data: bytes, key: str, content_type: str = "image/png") -> str:
        headers = {"Content-Type": content_type}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        response = await self.http_client.put(
            f"{self.upload_url}/{key}", content=data, headers=headers, timeout=self.timeout
        )
        response.raise_for_status()

        logger.debug(f"Uploaded {len(data)} bytes to {key}")
        return f"{self.public_url}/{key}"
