from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
from pydantic import BaseModel

from pagebuilder.core.config import settings


class BlobRecord(BaseModel):
    pathname: str
    url: str
    size: int
    uploaded_at: datetime
    content_type: Optional[str] = None


class BlobStore(ABC):
    """Flat object store addressed by absolute pathname keys.

    Implementations translate these calls to the backing store and raise
    ``UpstreamFailure`` for any backend error. Records are never mutated in
    place: moving an object is always ``copy`` followed by ``delete``.
    """

    @abstractmethod
    async def list(self, prefix: str, limit: Optional[int] = None) -> List[BlobRecord]:
        """List records whose pathname starts with prefix, sorted by pathname."""
        ...

    @abstractmethod
    async def head(self, url: str) -> Optional[BlobRecord]:
        """Metadata for one blob, or None if it does not exist."""
        ...

    @abstractmethod
    async def put(
        self, pathname: str, content: str, content_type: str = "text/html"
    ) -> BlobRecord:
        """Store content at exactly pathname, overwriting any existing blob."""
        ...

    @abstractmethod
    async def copy(self, from_url: str, to_pathname: str) -> BlobRecord:
        """Copy an existing blob to a new pathname."""
        ...

    @abstractmethod
    async def delete(self, urls: str | Iterable[str]) -> None:
        """Delete one or more blobs by URL."""
        ...

    @abstractmethod
    async def fetch(self, url: str) -> str:
        """Download blob content as text."""
        ...


_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """Factory based on BLOB_STORE_MODE; one adapter per process."""
    global _store
    if _store is None:
        from pagebuilder.services.local_blobs import LocalBlobStore
        from pagebuilder.services.vercel_blob import VercelBlobStore

        if settings.blob_store_mode == "vercel":
            _store = VercelBlobStore(
                token=settings.blob_read_write_token,
                api_url=settings.blob_api_url,
                timeout=settings.blob_request_timeout,
            )
        else:
            _store = LocalBlobStore(settings.local_blob_path)
    return _store
