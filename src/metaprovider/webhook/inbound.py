"""Normalization of Cloud API webhook callbacks into message payloads."""

from __future__ import annotations

from typing import Any

_MEDIA_TYPES = ("image", "video", "audio", "document", "sticker")


def _dicts(value: object) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _media_placeholder(media_type: str, media_id: str) -> str:
    return f"_event_{media_type}__{media_id}"


def _body_and_extras(msg: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    msg_type = str(msg.get("type") or "")

    if msg_type == "text":
        return str((msg.get("text") or {}).get("body") or ""), {}

    if msg_type == "interactive":
        interactive = msg.get("interactive") or {}
        reply = interactive.get("button_reply") or interactive.get("list_reply") or {}
        return str(reply.get("title") or ""), {
            "reply": {"id": reply.get("id"), "title": reply.get("title")},
        }

    if msg_type == "button":
        button = msg.get("button") or {}
        return str(button.get("text") or ""), {"payload": button.get("payload")}

    if msg_type in _MEDIA_TYPES:
        node = msg.get(msg_type) or {}
        media_id = str(node.get("id") or "")
        media = {
            "id": media_id,
            "mime_type": node.get("mime_type"),
            "sha256": node.get("sha256"),
            "filename": node.get("filename"),
        }
        body = str(node.get("caption") or "") or _media_placeholder(msg_type, media_id)
        return body, {"media": media}

    if msg_type == "location":
        location = msg.get("location") or {}
        return _media_placeholder("location", str(msg.get("id") or "")), {
            "location": {
                "latitude": location.get("latitude"),
                "longitude": location.get("longitude"),
                "name": location.get("name"),
                "address": location.get("address"),
            },
        }

    if msg_type == "reaction":
        reaction = msg.get("reaction") or {}
        return str(reaction.get("emoji") or ""), {
            "reaction": {"message_id": reaction.get("message_id"), "emoji": reaction.get("emoji")},
        }

    if msg_type == "contacts":
        return _media_placeholder("contacts", str(msg.get("id") or "")), {
            "contacts": _dicts(msg.get("contacts")),
        }

    return "", {}


def parse_webhook_payload(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Extract one normalized payload per inbound message.

    Status callbacks (delivered/read receipts) carry no ``messages`` and yield
    nothing. Messages without an id are skipped.
    """
    messages: list[dict[str, Any]] = []
    for entry in _dicts(payload.get("entry")):
        for change in _dicts(entry.get("changes")):
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            metadata = value.get("metadata") if isinstance(value.get("metadata"), dict) else {}
            names = {
                str(contact.get("wa_id") or ""): str((contact.get("profile") or {}).get("name") or "")
                for contact in _dicts(value.get("contacts"))
            }
            for msg in _dicts(value.get("messages")):
                msg_id = str(msg.get("id") or "")
                if not msg_id:
                    continue
                sender = str(msg.get("from") or "")
                body, extras = _body_and_extras(msg)
                name = names.get(sender, "")
                normalized: dict[str, Any] = {
                    "type": str(msg.get("type") or "unknown"),
                    "from": sender,
                    "to": str(metadata.get("display_phone_number") or ""),
                    "phone_number_id": str(metadata.get("phone_number_id") or ""),
                    "name": name,
                    "pushName": name,
                    "body": body,
                    "message_id": msg_id,
                    "timestamp": str(msg.get("timestamp") or ""),
                    **extras,
                }
                context = msg.get("context")
                if isinstance(context, dict) and context.get("id"):
                    normalized["quoted_message_id"] = str(context["id"])
                messages.append(normalized)
    return messages
