"""Click CLI: run the webhook listener or push one-off messages."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import click

from metaprovider.config import get_settings, validate_settings_for_env
from metaprovider.logging import configure_logging, recipient_hash
from metaprovider.provider import MetaProvider

logger = logging.getLogger(__name__)


def _build_provider() -> MetaProvider:
    settings = get_settings()
    validate_settings_for_env(settings)
    configure_logging(settings.log_level)
    return MetaProvider(settings=settings)


async def _send_once(method: str, *args: Any) -> dict[str, Any]:
    provider = _build_provider()
    try:
        return await getattr(provider, method)(*args)
    finally:
        await provider.queue.close()


async def _serve() -> None:
    provider = _build_provider()

    def _on_message(payload: dict[str, Any]) -> None:
        logger.info(
            "Inbound %s message from %s",
            payload.get("type"),
            recipient_hash(str(payload.get("from") or "")),
        )

    provider.on("message", _on_message)
    provider.on("ready", lambda _ready: logger.info("Provider ready"))
    provider.on("error", lambda payload: logger.warning("Provider error: %s", payload))
    async with provider:
        await asyncio.Event().wait()


@click.group()
def cli() -> None:
    """WhatsApp Cloud API provider."""


@cli.command()
def serve() -> None:
    """Listen for webhook callbacks until interrupted."""
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        click.echo("stopped")


@cli.command("send-text")
@click.argument("number")
@click.argument("message")
def send_text(number: str, message: str) -> None:
    """Send a plain text MESSAGE to NUMBER."""
    result = asyncio.run(_send_once("send_text", number, message))
    click.echo(json.dumps(result))


@cli.command("send-media")
@click.argument("number")
@click.argument("media")
@click.option("--caption", default="", help="Caption for images, videos and documents.")
def send_media(number: str, media: str, caption: str) -> None:
    """Send MEDIA (local path or URL) to NUMBER."""
    result = asyncio.run(_send_once("send_media", number, caption, media))
    click.echo(json.dumps(result))
