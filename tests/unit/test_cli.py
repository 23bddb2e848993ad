from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from metaprovider.cli import cli


def test_send_text_prints_graph_response(monkeypatch, provider, graph) -> None:
    monkeypatch.setattr("metaprovider.cli._build_provider", lambda: provider)
    runner = CliRunner()
    result = runner.invoke(cli, ["send-text", "5215512345678", "hola"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["messages"][0]["id"] == "wamid.1"
    assert graph.message_bodies[0]["text"]["body"] == "hola"
    assert provider.queue.closed is True


def test_send_media_with_caption(monkeypatch, tmp_path: Path, provider, graph) -> None:
    image = tmp_path / "photo.png"
    image.write_bytes(b"png")
    monkeypatch.setattr("metaprovider.cli._build_provider", lambda: provider)
    runner = CliRunner()
    result = runner.invoke(
        cli, ["send-media", "5215512345678", str(image), "--caption", "look"]
    )
    assert result.exit_code == 0, result.output
    assert graph.timeline == ["upload", "message"]
    assert graph.message_bodies[0]["image"] == {"id": "media-1", "caption": "look"}


def test_send_media_missing_file_fails(monkeypatch, tmp_path: Path, provider, graph) -> None:
    monkeypatch.setattr("metaprovider.cli._build_provider", lambda: provider)
    runner = CliRunner()
    result = runner.invoke(cli, ["send-media", "5215512345678", str(tmp_path / "nope.png")])
    assert result.exit_code != 0
    assert graph.requests == []
