"""First phase of a media send: upload bytes, receive a media handle."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from metaprovider.errors import MalformedResponseError, MediaResolutionError
from metaprovider.graph import GraphClient
from metaprovider.media.resolver import LocalFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MediaHandle:
    id: str


class MediaUploader:
    def __init__(self, graph: GraphClient) -> None:
        self._graph = graph

    async def upload(self, file: LocalFile) -> MediaHandle:
        """Upload ``file`` to the media endpoint.

        Raises:
            MediaResolutionError: the file can no longer be read.
            httpx.HTTPError: transport or status failure, unwrapped.
            MalformedResponseError: 2xx response without an ``id``.
        """
        try:
            content = await asyncio.to_thread(file.path.read_bytes)
        except OSError as exc:
            raise MediaResolutionError("media_file_unreadable") from exc

        body = await self._graph.post_media(
            filename=file.filename,
            content=content,
            mime_type=file.mime_type,
        )
        media_id = body.get("id")
        if not isinstance(media_id, str) or not media_id:
            raise MalformedResponseError("media upload response missing id")
        logger.info("Uploaded %s media (%d bytes)", file.kind.value, len(content))
        return MediaHandle(id=media_id)
