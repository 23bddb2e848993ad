import shutil
from pathlib import Path

import httpx
import pytest

from metaprovider.errors import MediaResolutionError
from metaprovider.media.audio import FfmpegAudioConverter
from metaprovider.media.download import HttpMediaDownloader, download_filename


def _downloader(tmp_path: Path, handler, max_bytes: int = 1024) -> HttpMediaDownloader:
    return HttpMediaDownloader(
        media_dir=tmp_path / "media",
        max_bytes=max_bytes,
        transport=httpx.MockTransport(handler),
    )


def test_download_filename_prefers_url_extension() -> None:
    name = download_filename("https://cdn.example/files/Photo 1.png?sig=abc", "image/jpeg")
    assert name.startswith("Photo_1-")
    assert name.endswith(".png")


def test_download_filename_falls_back_to_content_type() -> None:
    assert download_filename("https://cdn.example/blob", "application/pdf").endswith(".pdf")
    assert download_filename("https://cdn.example/", "").endswith(".bin")


@pytest.mark.asyncio
async def test_download_writes_file(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=b"\x89PNG", headers={"Content-Type": "image/png; charset=binary"}
        )

    downloaded = await _downloader(tmp_path, handler).download("https://cdn.example/cat.png")
    assert downloaded.content_type == "image/png"
    assert downloaded.path.parent == (tmp_path / "media").resolve()
    assert downloaded.path.read_bytes() == b"\x89PNG"


@pytest.mark.asyncio
async def test_download_rejects_invalid_url(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(MediaResolutionError) as exc:
        await _downloader(tmp_path, handler).download("ftp://cdn.example/cat.png")
    assert exc.value.reason == "media_url_invalid"


@pytest.mark.asyncio
async def test_download_status_failure(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="missing")

    with pytest.raises(MediaResolutionError) as exc:
        await _downloader(tmp_path, handler).download("https://cdn.example/cat.png")
    assert exc.value.reason == "media_download_failed"


@pytest.mark.asyncio
async def test_download_size_limit_removes_partial_file(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"x" * 64, headers={"Content-Type": "image/png"})

    with pytest.raises(MediaResolutionError) as exc:
        await _downloader(tmp_path, handler, max_bytes=16).download("https://cdn.example/a.png")
    assert exc.value.reason == "media_size_exceeded"
    assert list((tmp_path / "media").iterdir()) == []


@pytest.mark.asyncio
async def test_download_transport_error_is_retryable(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(MediaResolutionError) as exc:
        await _downloader(tmp_path, handler).download("https://cdn.example/a.png")
    assert exc.value.reason == "media_download_failed"
    assert exc.value.retryable is True


@pytest.mark.asyncio
async def test_converter_requires_source(tmp_path: Path) -> None:
    with pytest.raises(MediaResolutionError) as exc:
        await FfmpegAudioConverter().convert(tmp_path / "missing.mp3")
    assert exc.value.reason == "audio_source_missing"


@pytest.mark.asyncio
async def test_converter_unavailable(tmp_path: Path) -> None:
    source = tmp_path / "song.mp3"
    source.write_bytes(b"ID3")
    converter = FfmpegAudioConverter(binary=str(tmp_path / "no-such-ffmpeg"))
    with pytest.raises(MediaResolutionError) as exc:
        await converter.convert(source)
    assert exc.value.reason == "audio_converter_unavailable"


@pytest.mark.asyncio
async def test_converter_nonzero_exit(tmp_path: Path) -> None:
    binary = shutil.which("false")
    if binary is None:
        pytest.skip("false(1) not available")
    source = tmp_path / "song.mp3"
    source.write_bytes(b"ID3")
    with pytest.raises(MediaResolutionError) as exc:
        await FfmpegAudioConverter(binary=binary, media_dir=tmp_path / "media").convert(source)
    assert exc.value.reason == "audio_conversion_failed"
    assert list((tmp_path / "media").iterdir()) == []


def test_converter_command_targets_opus() -> None:
    command = FfmpegAudioConverter(binary="ffmpeg", bitrate="32k")._command(
        Path("/tmp/in.mp3"), Path("/tmp/out.ogg")
    )
    assert command == [
        "ffmpeg",
        "-y",
        "-i",
        "/tmp/in.mp3",
        "-vn",
        "-c:a",
        "libopus",
        "-b:a",
        "32k",
        "/tmp/out.ogg",
    ]


@pytest.mark.asyncio
async def test_download_write_failure_is_wrapped(tmp_path: Path) -> None:
    blocker = tmp_path / "media"
    blocker.write_text("not a directory")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"png", headers={"Content-Type": "image/png"})

    with pytest.raises(MediaResolutionError) as exc:
        await _downloader(tmp_path, handler).download("https://cdn.example/a.png")
    assert exc.value.reason == "media_write_failed"


@pytest.mark.asyncio
async def test_converter_writes_into_media_dir(tmp_path: Path) -> None:
    fake_ffmpeg = tmp_path / "fake-ffmpeg"
    fake_ffmpeg.write_text('#!/bin/sh\nfor last; do :; done\nprintf OggS > "$last"\n')
    fake_ffmpeg.chmod(0o755)
    user_dir = tmp_path / "user_music"
    user_dir.mkdir()
    source = user_dir / "song.mp3"
    source.write_bytes(b"ID3")

    converter = FfmpegAudioConverter(binary=str(fake_ffmpeg), media_dir=tmp_path / "media")
    target = await converter.convert(source)

    assert target.parent == (tmp_path / "media").resolve()
    assert target.suffix == ".ogg"
    assert target.read_bytes() == b"OggS"
    assert [path.name for path in user_dir.iterdir()] == ["song.mp3"]
