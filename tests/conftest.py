import json
from pathlib import Path

import httpx
import pytest

from metaprovider.config import get_settings
from metaprovider.events import EventEmitter
from metaprovider.media.download import DownloadedFile
from metaprovider.provider import MetaProvider


class GraphRecorder:
    """MockTransport handler standing in for graph.facebook.com."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.timeline: list[str] = []
        self.media_id = "media-1"
        self.message_status = 200
        self.media_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/media"):
            self.timeline.append("upload")
            if self.media_status >= 400:
                return httpx.Response(self.media_status, json={"error": {"code": 190}})
            return httpx.Response(200, json={"id": self.media_id})
        self.timeline.append("message")
        if self.message_status >= 400:
            return httpx.Response(
                self.message_status,
                json={"error": {"message": "Invalid OAuth access token.", "code": 190}},
            )
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "messaging_product": "whatsapp",
                "contacts": [{"input": body["to"], "wa_id": body["to"]}],
                "messages": [{"id": f"wamid.{len(self.requests)}"}],
            },
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def message_bodies(self) -> list[dict]:
        return [
            json.loads(request.content)
            for request in self.requests
            if request.url.path.endswith("/messages")
        ]

    @property
    def uploads(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith("/media")]


class FakeWebhook(EventEmitter):
    EVENTS = frozenset({"auth_failure", "ready", "message"})

    def __init__(self) -> None:
        super().__init__()
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True
        self.emit("ready")

    async def stop(self) -> None:
        self.stopped = True


class FakeDownloader:
    def __init__(self, media_dir: Path, timeline: list[str]) -> None:
        self._media_dir = media_dir
        self._timeline = timeline
        self.calls: list[str] = []
        self.filename = "remote.png"
        self.content_type = "image/png"

    async def download(self, url: str) -> DownloadedFile:
        self.calls.append(url)
        self._timeline.append("download")
        self._media_dir.mkdir(parents=True, exist_ok=True)
        path = self._media_dir / self.filename
        path.write_bytes(b"remote-bytes")
        return DownloadedFile(path=path, content_type=self.content_type)


class FakeConverter:
    def __init__(self, media_dir: Path, timeline: list[str]) -> None:
        self._media_dir = media_dir
        self._timeline = timeline
        self.calls: list[Path] = []

    async def convert(self, source: Path) -> Path:
        self.calls.append(source)
        self._timeline.append("convert")
        self._media_dir.mkdir(parents=True, exist_ok=True)
        target = self._media_dir / f"{source.stem}-converted.ogg"
        target.write_bytes(b"OggS")
        return target


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("META_JWT_TOKEN", "test-jwt")
    monkeypatch.setenv("META_NUMBER_ID", "1234567890")
    monkeypatch.setenv("META_VERIFY_TOKEN", "test-token")
    monkeypatch.setenv("MEDIA_DIR", str(tmp_path / "media"))
    monkeypatch.setenv("QUEUE_INTERVAL_MS", "0")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def graph() -> GraphRecorder:
    return GraphRecorder()


@pytest.fixture
def downloader(tmp_path: Path, graph: GraphRecorder) -> FakeDownloader:
    return FakeDownloader(tmp_path / "downloads", graph.timeline)


@pytest.fixture
def converter(tmp_path: Path, graph: GraphRecorder) -> FakeConverter:
    return FakeConverter(tmp_path / "converted", graph.timeline)


@pytest.fixture
def webhook() -> FakeWebhook:
    return FakeWebhook()


@pytest.fixture
def provider(
    graph: GraphRecorder,
    downloader: FakeDownloader,
    converter: FakeConverter,
    webhook: FakeWebhook,
) -> MetaProvider:
    return MetaProvider(
        transport=graph.transport,
        downloader=downloader,
        audio_converter=converter,
        webhook=webhook,
    )
