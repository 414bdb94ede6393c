from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional
import mimetypes

from pagebuilder.core.errors import UpstreamFailure
from pagebuilder.services.blob_store import BlobRecord, BlobStore

URL_SCHEME = "local://"


class LocalBlobStore(BlobStore):
    """Blob store backed by a local directory (development and tests)."""

    def __init__(self, base_path: Path | str):
        self.base_path = Path(base_path).resolve()
        if not self.base_path.exists():
            self.base_path.mkdir(parents=True, exist_ok=True)

    def _url_for(self, pathname: str) -> str:
        return f"{URL_SCHEME}{pathname}"

    def _pathname_from_url(self, url: str) -> str:
        if not url.startswith(URL_SCHEME):
            raise UpstreamFailure(f"Not a local blob URL: {url}")
        return url[len(URL_SCHEME):]

    def _validate_path_within_base(self, pathname: str) -> Path:
        """Map a pathname to a file, refusing anything outside base_path."""
        resolved = (self.base_path / pathname).resolve()
        if resolved != self.base_path and self.base_path not in resolved.parents:
            raise UpstreamFailure("Path traversal detected")
        return resolved

    def _record(self, path: Path) -> BlobRecord:
        pathname = path.relative_to(self.base_path).as_posix()
        stat = path.stat()
        content_type, _ = mimetypes.guess_type(path.name)
        return BlobRecord(
            pathname=pathname,
            url=self._url_for(pathname),
            size=stat.st_size,
            uploaded_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            content_type=content_type or "application/octet-stream",
        )

    async def list(self, prefix: str, limit: Optional[int] = None) -> List[BlobRecord]:
        records = []
        for item in self.base_path.rglob("*"):
            if not item.is_file():
                continue
            pathname = item.relative_to(self.base_path).as_posix()
            if pathname.startswith(prefix):
                records.append(self._record(item))

        records.sort(key=lambda r: r.pathname)
        if limit is not None:
            records = records[:limit]
        return records

    async def head(self, url: str) -> Optional[BlobRecord]:
        path = self._validate_path_within_base(self._pathname_from_url(url))
        if not path.is_file():
            return None
        return self._record(path)

    async def put(
        self, pathname: str, content: str, content_type: str = "text/html"
    ) -> BlobRecord:
        path = self._validate_path_within_base(pathname)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return self._record(path)

    async def copy(self, from_url: str, to_pathname: str) -> BlobRecord:
        source = self._validate_path_within_base(self._pathname_from_url(from_url))
        if not source.is_file():
            raise UpstreamFailure(f"Copy source missing: {from_url}")
        target = self._validate_path_within_base(to_pathname)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(source.read_bytes())
        return self._record(target)

    async def delete(self, urls: str | Iterable[str]) -> None:
        if isinstance(urls, str):
            urls = [urls]
        for url in urls:
            path = self._validate_path_within_base(self._pathname_from_url(url))
            path.unlink(missing_ok=True)
            self._prune_empty_dirs(path.parent)

    async def fetch(self, url: str) -> str:
        path = self._validate_path_within_base(self._pathname_from_url(url))
        if not path.is_file():
            raise UpstreamFailure(f"Failed to fetch blob: 404 {url}")
        return path.read_text(encoding="utf-8")

    def _prune_empty_dirs(self, directory: Path) -> None:
        while directory != self.base_path and self.base_path in directory.parents:
            if directory.exists():
                if any(directory.iterdir()):
                    return
                directory.rmdir()
            directory = directory.parent
