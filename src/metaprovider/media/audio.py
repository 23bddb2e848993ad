"""Audio conversion to OGG/Opus, the voice-note format the Cloud API plays inline."""

from __future__ import annotations

import asyncio
import logging
import tempfile
import uuid
from pathlib import Path
from typing import Protocol

from metaprovider.errors import MediaResolutionError
from metaprovider.media.download import ensure_media_root

logger = logging.getLogger(__name__)

CONVERTED_AUDIO_MIME = "audio/ogg"


class AudioConverter(Protocol):
    async def convert(self, source: Path) -> Path: ...


class FfmpegAudioConverter:
    """Writes converted files under ``media_dir``, never beside the source."""

    def __init__(
        self,
        *,
        binary: str = "ffmpeg",
        bitrate: str = "64k",
        media_dir: str | Path | None = None,
    ) -> None:
        self._binary = binary
        self._bitrate = bitrate
        self._media_dir = media_dir or Path(tempfile.gettempdir()) / "metaprovider"

    def _command(self, source: Path, target: Path) -> list[str]:
        return [
            self._binary,
            "-y",
            "-i",
            str(source),
            "-vn",
            "-c:a",
            "libopus",
            "-b:a",
            self._bitrate,
            str(target),
        ]

    async def convert(self, source: Path) -> Path:
        if not source.is_file():
            raise MediaResolutionError("audio_source_missing")
        try:
            root = ensure_media_root(self._media_dir)
        except OSError as exc:
            raise MediaResolutionError("audio_conversion_failed") from exc
        target = root / f"{source.stem}-{uuid.uuid4().hex[:8]}.ogg"
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command(source, target),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise MediaResolutionError("audio_converter_unavailable") from exc

        _, stderr = await process.communicate()
        if process.returncode != 0:
            tail = stderr.decode("utf-8", errors="replace").strip().splitlines()[-1:]
            logger.warning(
                "ffmpeg exited with %s: %s", process.returncode, tail[0] if tail else ""
            )
            target.unlink(missing_ok=True)
            raise MediaResolutionError("audio_conversion_failed")
        return target
