"""Download of remote media references into the local media directory."""

from __future__ import annotations

import mimetypes
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

import httpx

from metaprovider.errors import MediaResolutionError


@dataclass(frozen=True, slots=True)
class DownloadedFile:
    path: Path
    content_type: str


class MediaDownloader(Protocol):
    async def download(self, url: str) -> DownloadedFile: ...


def ensure_media_root(media_dir: str | Path) -> Path:
    root = Path(media_dir).expanduser().resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def download_filename(url: str, content_type: str) -> str:
    """Unique, filesystem-safe name keeping the URL stem and a usable extension."""
    url_path = Path(urlparse(url).path)
    ext = url_path.suffix.lower()
    if not ext or mimetypes.guess_type(f"file{ext}")[0] is None:
        ext = (mimetypes.guess_extension(content_type) if content_type else None) or ext or ".bin"
    stem = re.sub(r"[^a-zA-Z0-9_-]", "_", url_path.stem)[:60] or "media"
    return f"{stem}-{uuid.uuid4().hex[:8]}{ext}"


class HttpMediaDownloader:
    """Streams a URL to disk, refusing bodies larger than ``max_bytes``."""

    def __init__(
        self,
        *,
        media_dir: str | Path,
        max_bytes: int,
        timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._media_dir = media_dir
        self._max_bytes = max_bytes
        self._timeout = timeout_seconds
        self._transport = transport

    async def download(self, url: str) -> DownloadedFile:
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise MediaResolutionError("media_url_invalid")
        if self._max_bytes <= 0:
            raise MediaResolutionError("media_size_exceeded")

        target: Path | None = None
        try:
            root = ensure_media_root(self._media_dir)
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport, follow_redirects=True
            ) as client:
                async with client.stream("GET", url) as response:
                    if response.status_code >= 400:
                        raise MediaResolutionError("media_download_failed")
                    content_type = (
                        response.headers.get("Content-Type", "").split(";")[0].strip().lower()
                    )
                    content_length_raw = response.headers.get("Content-Length", "").strip()
                    if content_length_raw.isdigit() and int(content_length_raw) > self._max_bytes:
                        raise MediaResolutionError("media_size_exceeded")
                    target = root / download_filename(url, content_type)
                    total = 0
                    with target.open("wb") as handle:
                        async for chunk in response.aiter_bytes():
                            total += len(chunk)
                            if total > self._max_bytes:
                                raise MediaResolutionError("media_size_exceeded")
                            handle.write(chunk)
                    return DownloadedFile(path=target, content_type=content_type)
        except MediaResolutionError:
            if target is not None:
                target.unlink(missing_ok=True)
            raise
        except httpx.HTTPError as exc:
            if target is not None:
                target.unlink(missing_ok=True)
            raise MediaResolutionError("media_download_failed", retryable=True) from exc
        except OSError as exc:
            if target is not None:
                target.unlink(missing_ok=True)
            raise MediaResolutionError("media_write_failed") from exc
