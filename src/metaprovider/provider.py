"""WhatsApp Cloud API provider.

Typed send methods build a message body (uploading media first when needed)
and hand it to the dispatch queue, which POSTs bodies to ``/messages`` one at a
time. Inbound webhook events are republished as ``error``, ``ready`` and
``message``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import partial
from typing import Any, Protocol

import httpx

from metaprovider.bridge import EventBridge
from metaprovider.config import Settings, get_settings
from metaprovider.errors import ConfigError, InvalidInput
from metaprovider.events import EventEmitter, ProviderEvent
from metaprovider.graph import GraphClient
from metaprovider.logging import recipient_hash
from metaprovider.media.audio import CONVERTED_AUDIO_MIME, AudioConverter, FfmpegAudioConverter
from metaprovider.media.download import HttpMediaDownloader, MediaDownloader
from metaprovider.media.resolver import LocalFile, MediaKind, MediaResolver
from metaprovider.media.upload import MediaUploader
from metaprovider.payloads import MessageKind, SendRequest, build_message_body
from metaprovider.queue import DispatchQueue
from metaprovider.webhook.server import MetaWebhookServer

logger = logging.getLogger(__name__)

_MESSAGE_KIND_FOR_MEDIA = {
    MediaKind.IMAGE: MessageKind.IMAGE,
    MediaKind.VIDEO: MessageKind.VIDEO,
    MediaKind.AUDIO: MessageKind.AUDIO,
    MediaKind.DOCUMENT: MessageKind.DOCUMENT,
}


class WebhookServer(Protocol):
    EVENTS: frozenset[str]

    def on(self, event: str, listener: Any) -> Any: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class MetaProvider(EventEmitter):
    def __init__(
        self,
        *,
        jwt_token: str | None = None,
        number_id: str | None = None,
        verify_token: str | None = None,
        version: str | None = None,
        port: int | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        downloader: MediaDownloader | None = None,
        audio_converter: AudioConverter | None = None,
        webhook: WebhookServer | None = None,
        queue_interval_ms: int | None = None,
    ) -> None:
        super().__init__()
        settings = settings or get_settings()
        self.jwt_token = jwt_token if jwt_token is not None else settings.meta_jwt_token
        self.number_id = number_id if number_id is not None else settings.meta_number_id
        self.version = version or settings.meta_api_version
        self.port = port if port is not None else settings.port
        if not self.jwt_token.strip() or not self.number_id.strip():
            raise ConfigError("jwt_token and number_id are required")

        self._graph = GraphClient(
            jwt_token=self.jwt_token,
            number_id=self.number_id,
            version=self.version,
            base_url=settings.meta_graph_url,
            timeout_seconds=settings.http_timeout_seconds,
            transport=transport,
        )
        self._uploader = MediaUploader(self._graph)
        self._resolver = MediaResolver(
            downloader=downloader
            or HttpMediaDownloader(
                media_dir=settings.media_dir,
                max_bytes=settings.media_max_bytes,
                timeout_seconds=settings.http_timeout_seconds,
            ),
            audio_converter=audio_converter
            or FfmpegAudioConverter(
                binary=settings.ffmpeg_binary,
                bitrate=settings.audio_bitrate,
                media_dir=settings.media_dir,
            ),
        )
        interval = queue_interval_ms if queue_interval_ms is not None else settings.queue_interval_ms
        self._queue = DispatchQueue(interval_ms=interval)
        self._webhook: WebhookServer = webhook or MetaWebhookServer(
            verify_token=verify_token if verify_token is not None else settings.meta_verify_token,
            host=settings.bind_host,
            port=self.port,
            path=settings.webhook_path,
        )
        self._bridge = EventBridge(self._webhook, self._publish)

    @property
    def queue(self) -> DispatchQueue:
        return self._queue

    @property
    def webhook(self) -> WebhookServer:
        return self._webhook

    @property
    def resolver(self) -> MediaResolver:
        return self._resolver

    def _publish(self, event: ProviderEvent) -> None:
        self.emit(event.name, event.payload)

    async def start(self) -> None:
        """Begin listening for webhook callbacks."""
        self._queue.start()
        await self._webhook.start()

    async def close(self) -> None:
        """Drain queued sends, then stop the webhook listener."""
        await self._queue.close()
        await self._webhook.stop()
        await self.drain()

    async def __aenter__(self) -> MetaProvider:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def send_message_meta(self, body: dict[str, Any]) -> dict[str, Any]:
        """Queue a ready-made body; resolves with the Graph API JSON response."""
        return await self._queue.run(partial(self._graph.post_message, body))

    async def _send(
        self, number: str, kind: MessageKind, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        body = build_message_body(SendRequest(recipient=number, kind=kind, payload=payload))
        logger.info("Queueing %s message to %s", kind.value, recipient_hash(number))
        return await self.send_message_meta(body)

    @staticmethod
    def _check_recipient(number: str) -> None:
        if not isinstance(number, str) or not number.strip():
            raise InvalidInput("recipient is required")

    async def _send_file(
        self,
        number: str,
        kind: MessageKind,
        file: LocalFile,
        caption: str | None = None,
    ) -> dict[str, Any]:
        try:
            handle = await self._uploader.upload(file)
        finally:
            file.discard()
        payload: dict[str, Any] = {"id": handle.id, "caption": caption}
        if kind is MessageKind.DOCUMENT:
            payload["filename"] = file.filename or "Doc"
        return await self._send(number, kind, payload)

    async def send_text(
        self, number: str, message: str, *, preview_url: bool = False
    ) -> dict[str, Any]:
        return await self._send(
            number, MessageKind.TEXT, {"body": message, "preview_url": preview_url}
        )

    async def send_image(
        self, number: str, media_input: object = None, caption: str | None = None
    ) -> dict[str, Any]:
        self._check_recipient(number)
        file = await self._resolver.resolve(media_input)
        return await self._send_file(number, MessageKind.IMAGE, file, caption)

    async def send_video(
        self, number: str, path_video: object = None, caption: str | None = None
    ) -> dict[str, Any]:
        self._check_recipient(number)
        file = await self._resolver.resolve(path_video)
        return await self._send_file(number, MessageKind.VIDEO, file, caption)

    async def send_audio(self, number: str, path_audio: object = None) -> dict[str, Any]:
        """Send a voice note; non-OGG audio is converted before upload."""
        self._check_recipient(number)
        file = await self._resolver.resolve(path_audio)
        if file.kind is not MediaKind.AUDIO:
            file.discard()
            raise InvalidInput(f"send_audio needs an audio file, got {file.mime_type}")
        if file.mime_type != CONVERTED_AUDIO_MIME:
            file = await self._resolver.prepare(file)
        return await self._send_file(number, MessageKind.AUDIO, file)

    async def send_file(
        self, number: str, path_file: object = None, caption: str | None = None
    ) -> dict[str, Any]:
        self._check_recipient(number)
        file = await self._resolver.resolve(path_file)
        return await self._send_file(number, MessageKind.DOCUMENT, file, caption)

    async def send_media(self, number: str, text: str = "", media_input: object = None) -> dict[str, Any]:
        """Send any media reference (path or URL) as the type its MIME calls for.

        Images, videos and documents carry ``text`` as caption; audio is
        converted to OGG/Opus and sent without one.
        """
        self._check_recipient(number)
        file = await self._resolver.prepare(media_input)
        kind = _MESSAGE_KIND_FOR_MEDIA[file.kind]
        caption = text or None
        if kind is MessageKind.AUDIO:
            caption = None
        return await self._send_file(number, kind, file, caption)

    async def send_lists(self, number: str, list_: Mapping[str, Any]) -> dict[str, Any]:
        return await self._send(number, MessageKind.LISTS, {"list": list_})

    async def send_list(
        self,
        number: str,
        header: str,
        text: str,
        footer: str,
        button: str,
        sections: Sequence[Mapping[str, Any]],
    ) -> dict[str, Any]:
        return await self._send(
            number,
            MessageKind.LIST,
            {
                "header": header,
                "body": text,
                "footer": footer,
                "button": button,
                "sections": sections,
            },
        )

    async def send_buttons(
        self, number: str, text: str, buttons: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        return await self._send(number, MessageKind.BUTTONS, {"text": text, "buttons": buttons})

    async def send_buttons_text(
        self, number: str, text: str, buttons: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        return await self._send(
            number, MessageKind.BUTTONS_TEXT, {"text": text, "buttons": buttons}
        )

    async def send_buttons_media(
        self, number: str, text: str, buttons: Sequence[Mapping[str, Any]], url: str
    ) -> dict[str, Any]:
        return await self._send(
            number,
            MessageKind.BUTTONS_MEDIA,
            {"text": text, "buttons": buttons, "url": url},
        )

    async def send_template(
        self,
        number: str,
        template: str,
        language_code: str,
        components: Sequence[Mapping[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Send a registered template; ``components`` must match its schema."""
        return await self._send(
            number,
            MessageKind.TEMPLATE,
            {"name": template, "language_code": language_code, "components": components},
        )

    async def send_contacts(
        self, number: str, contacts: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        return await self._send(number, MessageKind.CONTACTS, {"contacts": contacts})

    async def send_catalog(
        self, number: str, body_text: str, item_catalog_id: str
    ) -> dict[str, Any]:
        return await self._send(
            number,
            MessageKind.CATALOG,
            {"body_text": body_text, "thumbnail_product_retailer_id": item_catalog_id},
        )

    async def send_message(
        self,
        number: str,
        message: str,
        options: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Buttons win over media; with neither, ``message`` goes out as text."""
        options = options or {}
        if options.get("buttons"):
            return await self.send_buttons(number, message, options["buttons"])
        if options.get("media"):
            return await self.send_media(number, message, options["media"])
        return await self.send_text(number, message)

    async def send_reaction(self, number: str, react: Mapping[str, Any]) -> dict[str, Any]:
        return await self._send(
            number,
            MessageKind.REACTION,
            {"message_id": react.get("message_id"), "emoji": react.get("emoji")},
        )

    async def send_location(
        self, number: str, localization: Mapping[str, Any]
    ) -> dict[str, Any]:
        """``localization`` uses ``long_number``/``lat_number`` (or
        ``longitude``/``latitude``) plus optional ``name`` and ``address``.
        """
        return await self._send(
            number,
            MessageKind.LOCATION,
            {
                "longitude": localization.get("long_number", localization.get("longitude")),
                "latitude": localization.get("lat_number", localization.get("latitude")),
                "name": localization.get("name"),
                "address": localization.get("address"),
            },
        )
