"""Inbound side: Cloud API webhook listener and callback normalization."""

from metaprovider.webhook.inbound import parse_webhook_payload
from metaprovider.webhook.server import MetaWebhookServer

__all__ = ["MetaWebhookServer", "parse_webhook_payload"]
