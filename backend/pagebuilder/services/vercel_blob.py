from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import quote
import logging

import httpx

from pagebuilder.core.errors import UpstreamFailure
from pagebuilder.services.blob_store import BlobRecord, BlobStore

logger = logging.getLogger(__name__)

API_VERSION = "7"
PAGE_SIZE = 1000


def _parse_time(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class VercelBlobStore(BlobStore):
    """Blob store backed by the Vercel Blob REST API."""

    def __init__(self, token: str, api_url: str, timeout: float = 30.0):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _headers(self, **extra: str) -> dict:
        headers = {
            "authorization": f"Bearer {self.token}",
            "x-api-version": API_VERSION,
        }
        headers.update(extra)
        return headers

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPError as e:
            logger.error("Blob store %s %s failed: %s", method, url, e)
            raise UpstreamFailure(f"Blob store request failed: {e}") from e

    def _record(self, data: dict, size: Optional[int] = None) -> BlobRecord:
        return BlobRecord(
            pathname=data["pathname"],
            url=data["url"],
            size=data.get("size", size or 0),
            uploaded_at=_parse_time(data.get("uploadedAt")),
            content_type=data.get("contentType"),
        )

    async def list(self, prefix: str, limit: Optional[int] = None) -> List[BlobRecord]:
        records: List[BlobRecord] = []
        cursor = None

        while True:
            params = {"prefix": prefix, "limit": limit or PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor

            response = await self._request(
                "GET", self.api_url, params=params, headers=self._headers()
            )
            data = response.json()
            records.extend(self._record(b) for b in data.get("blobs", []))

            if limit is not None and len(records) >= limit:
                return records[:limit]
            cursor = data.get("cursor")
            if not data.get("hasMore") or not cursor:
                break

        records.sort(key=lambda r: r.pathname)
        return records

    async def head(self, url: str) -> Optional[BlobRecord]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.api_url, params={"url": url}, headers=self._headers()
                )
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Blob head failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.is_error:
            raise UpstreamFailure(f"Blob head failed: {response.status_code}")
        return self._record(response.json())

    async def put(
        self, pathname: str, content: str, content_type: str = "text/html"
    ) -> BlobRecord:
        body = content.encode("utf-8")
        response = await self._request(
            "PUT",
            f"{self.api_url}/{quote(pathname, safe='/')}",
            content=body,
            headers=self._headers(**{
                "x-content-type": content_type,
                "x-add-random-suffix": "0",
                "x-allow-overwrite": "1",
            }),
        )
        return self._record(response.json(), size=len(body))

    async def copy(self, from_url: str, to_pathname: str) -> BlobRecord:
        source = await self.head(from_url)
        response = await self._request(
            "PUT",
            f"{self.api_url}/{quote(to_pathname, safe='/')}",
            params={"fromUrl": from_url},
            headers=self._headers(**{
                "x-add-random-suffix": "0",
                "x-allow-overwrite": "1",
            }),
        )
        return self._record(response.json(), size=source.size if source else 0)

    async def delete(self, urls: str | Iterable[str]) -> None:
        if isinstance(urls, str):
            urls = [urls]
        urls = [u for u in urls]
        if not urls:
            return
        await self._request(
            "POST",
            f"{self.api_url}/delete",
            json={"urls": urls},
            headers=self._headers(),
        )

    async def fetch(self, url: str) -> str:
        # Public blob URLs are served by the CDN and need no token
        response = await self._request("GET", url)
        return response.text
