"""Media reference resolution: local file, MIME sniffing and conversion path."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from metaprovider.errors import InvalidInput, MediaInputMissing, MediaResolutionError
from metaprovider.media.audio import CONVERTED_AUDIO_MIME, AudioConverter
from metaprovider.media.download import MediaDownloader

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


# Evaluated in order; anything unmatched is sent as a document.
_KIND_PREFIXES: tuple[tuple[str, MediaKind], ...] = (
    ("image/", MediaKind.IMAGE),
    ("video/", MediaKind.VIDEO),
    ("audio/", MediaKind.AUDIO),
)


def classify(mime_type: str) -> MediaKind:
    value = mime_type.strip().lower()
    for prefix, kind in _KIND_PREFIXES:
        if value.startswith(prefix):
            return kind
    return MediaKind.DOCUMENT


def sniff_mime_type(path: Path, fallback: str = "") -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or fallback or DEFAULT_MIME


@dataclass(frozen=True, slots=True)
class LocalFile:
    path: Path
    mime_type: str
    # True for files this package downloaded or converted; only those are discarded.
    owned: bool = False

    @property
    def kind(self) -> MediaKind:
        return classify(self.mime_type)

    @property
    def filename(self) -> str:
        return self.path.name

    def discard(self) -> None:
        if self.owned:
            self.path.unlink(missing_ok=True)


@dataclass(frozen=True, slots=True)
class LocalPath:
    path: Path


@dataclass(frozen=True, slots=True)
class RemoteUrl:
    url: str


@dataclass(frozen=True, slots=True)
class ResolvedFile:
    file: LocalFile


MediaReference = LocalPath | RemoteUrl | ResolvedFile


def parse_media_reference(value: object) -> MediaReference:
    """Turn caller input into a ``MediaReference`` without touching disk or network.

    Raises:
        MediaInputMissing: ``value`` is None or blank.
        InvalidInput: ``value`` is of an unsupported type.
    """
    if value is None:
        raise MediaInputMissing(value)
    if isinstance(value, (LocalPath, RemoteUrl, ResolvedFile)):
        return value
    if isinstance(value, LocalFile):
        return ResolvedFile(value)
    if isinstance(value, Path):
        if str(value) in {"", "."}:
            raise MediaInputMissing(value)
        return LocalPath(value.expanduser())
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise MediaInputMissing(value)
        if text.lower().startswith(("http://", "https://")):
            return RemoteUrl(text)
        return LocalPath(Path(text).expanduser())
    raise InvalidInput(f"unsupported media reference: {type(value).__name__}")


class MediaResolver:
    def __init__(self, *, downloader: MediaDownloader, audio_converter: AudioConverter) -> None:
        self._downloader = downloader
        self._audio_converter = audio_converter

    async def resolve(self, reference: object) -> LocalFile:
        """Yield a readable local file and its sniffed MIME type."""
        parsed = parse_media_reference(reference)
        if isinstance(parsed, ResolvedFile):
            return parsed.file
        if isinstance(parsed, RemoteUrl):
            downloaded = await self._downloader.download(parsed.url)
            return LocalFile(
                path=downloaded.path,
                mime_type=sniff_mime_type(downloaded.path, downloaded.content_type),
                owned=True,
            )
        if not parsed.path.is_file():
            raise MediaResolutionError("media_file_not_found")
        return LocalFile(path=parsed.path, mime_type=sniff_mime_type(parsed.path))

    async def prepare(self, reference: object) -> LocalFile:
        """Resolve ``reference`` and convert audio, returning the file to upload.

        A downloaded intermediate is removed once converted; the caller owns
        the returned file and should ``discard()`` it after upload.
        """
        local = await self.resolve(reference)
        if local.kind is not MediaKind.AUDIO:
            return local
        try:
            converted = await self._audio_converter.convert(local.path)
        finally:
            local.discard()
        logger.debug("Converted %s to %s", local.mime_type, CONVERTED_AUDIO_MIME)
        return LocalFile(path=converted, mime_type=CONVERTED_AUDIO_MIME, owned=True)
