"""Message bodies for the Cloud API ``/messages`` endpoint.

Builders are pure: they map a ``SendRequest`` to the wire dict and never touch
the network or the filesystem. A malformed request raises ``InvalidInput``.
Every body carries ``messaging_product``, ``to``, ``type`` and exactly one
sub-object keyed by ``type``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from metaprovider.errors import InvalidInput

MESSAGING_PRODUCT = "whatsapp"

# Cloud API rejects interactive reply messages with more than three buttons.
MAX_REPLY_BUTTONS = 3


class MessageKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    LIST = "list"
    LISTS = "lists"
    BUTTONS = "buttons"
    BUTTONS_TEXT = "buttons_text"
    BUTTONS_MEDIA = "buttons_media"
    TEMPLATE = "template"
    CONTACTS = "contacts"
    CATALOG = "catalog"
    REACTION = "reaction"
    LOCATION = "location"


MEDIA_KINDS = frozenset(
    {MessageKind.IMAGE, MessageKind.VIDEO, MessageKind.AUDIO, MessageKind.DOCUMENT}
)


@dataclass(frozen=True, slots=True)
class SendRequest:
    recipient: str
    kind: MessageKind
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", MessageKind(self.kind))
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))


def _require(source: Mapping[str, Any], key: str, context: str) -> Any:
    if not isinstance(source, Mapping):
        raise InvalidInput(f"{context}: expected a mapping, got {type(source).__name__}")
    value = source.get(key)
    if value is None:
        raise InvalidInput(f"{context}: missing field '{key}'")
    return value


def _sequence(source: Mapping[str, Any], key: str) -> list[Any]:
    if not isinstance(source, Mapping):
        raise InvalidInput(f"expected a mapping holding '{key}', got {type(source).__name__}")
    value = source.get(key)
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidInput(f"field '{key}' must be a list")
    return list(value)


def _envelope(
    recipient: str,
    message_type: str,
    content: Any,
    *,
    individual: bool = True,
) -> dict[str, Any]:
    body: dict[str, Any] = {"messaging_product": MESSAGING_PRODUCT}
    if individual:
        body["recipient_type"] = "individual"
    body["to"] = recipient
    body["type"] = message_type
    body[message_type] = content
    return body


def build_text(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    content = {
        "preview_url": bool(payload.get("preview_url", False)),
        "body": _require(payload, "body", "text"),
    }
    return _envelope(recipient, "text", content)


def _build_media(kind: MessageKind) -> Callable[[str, Mapping[str, Any]], dict[str, Any]]:
    def build(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        content: dict[str, Any] = {"id": _require(payload, "id", kind.value)}
        caption = payload.get("caption")
        if caption and kind is not MessageKind.AUDIO:
            content["caption"] = caption
        if kind is MessageKind.DOCUMENT:
            content["filename"] = payload.get("filename") or "Doc"
        return _envelope(recipient, kind.value, content, individual=False)

    build.__name__ = f"build_{kind.value}"
    return build


build_image = _build_media(MessageKind.IMAGE)
build_video = _build_media(MessageKind.VIDEO)
build_audio = _build_media(MessageKind.AUDIO)
build_document = _build_media(MessageKind.DOCUMENT)


def _reply_buttons(buttons: list[Any], *, synthesize_ids: bool) -> list[dict[str, Any]]:
    if not buttons:
        raise InvalidInput("buttons: at least one button is required")
    if len(buttons) > MAX_REPLY_BUTTONS:
        raise InvalidInput(
            f"buttons: {len(buttons)} given, at most {MAX_REPLY_BUTTONS} allowed"
        )
    parsed: list[dict[str, Any]] = []
    for index, button in enumerate(buttons):
        if synthesize_ids:
            if not isinstance(button, Mapping):
                raise InvalidInput(f"buttons[{index}]: expected a mapping")
            title = button.get("body", button.get("title"))
            if title is None:
                raise InvalidInput(f"buttons[{index}]: missing field 'body'")
            reply = {"id": button.get("id") or f"btn-{index}", "title": title}
        else:
            context = f"buttons[{index}]"
            reply = {
                "id": _require(button, "id", context),
                "title": _require(button, "title", context),
            }
        parsed.append({"type": "reply", "reply": reply})
    return parsed


def _button_message(
    recipient: str,
    text: str,
    buttons: list[dict[str, Any]],
    header: dict[str, Any] | None = None,
) -> dict[str, Any]:
    interactive: dict[str, Any] = {"type": "button"}
    if header is not None:
        interactive["header"] = header
    interactive["body"] = {"text": text}
    interactive["action"] = {"buttons": buttons}
    return _envelope(recipient, "interactive", interactive)


def build_buttons(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    buttons = _reply_buttons(_sequence(payload, "buttons"), synthesize_ids=True)
    return _button_message(recipient, _require(payload, "text", "buttons"), buttons)


def build_buttons_text(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    buttons = _reply_buttons(_sequence(payload, "buttons"), synthesize_ids=False)
    return _button_message(recipient, _require(payload, "text", "buttons_text"), buttons)


def build_buttons_media(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    buttons = _reply_buttons(_sequence(payload, "buttons"), synthesize_ids=False)
    header = {"type": "image", "image": {"link": _require(payload, "url", "buttons_media")}}
    return _button_message(
        recipient, _require(payload, "text", "buttons_media"), buttons, header=header
    )


def build_lists(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    shaped = _require(payload, "list", "lists")
    if not isinstance(shaped, Mapping):
        raise InvalidInput("lists: 'list' must be a mapping")
    return _envelope(recipient, "interactive", {**shaped, "type": "list"})


def build_list(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    sections = []
    for index, section in enumerate(_sequence(payload, "sections")):
        context = f"sections[{index}]"
        rows = [
            {
                "id": _require(row, "id", f"{context}.rows"),
                "title": _require(row, "title", f"{context}.rows"),
                "description": row.get("description"),
            }
            for row in _sequence(section, "rows")
        ]
        sections.append({"title": _require(section, "title", context), "rows": rows})
    interactive = {
        "type": "list",
        "header": {"type": "text", "text": _require(payload, "header", "list")},
        "body": {"text": _require(payload, "body", "list")},
        "footer": {"text": _require(payload, "footer", "list")},
        "action": {"button": _require(payload, "button", "list"), "sections": sections},
    }
    return _envelope(recipient, "interactive", interactive)


def build_template(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    template: dict[str, Any] = {
        "name": _require(payload, "name", "template"),
        "language": {"code": _require(payload, "language_code", "template")},
    }
    if payload.get("components") is not None:
        template["components"] = _sequence(payload, "components")
    return _envelope(recipient, "template", template)


def _contact(record: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(record, Mapping):
        raise InvalidInput("contacts: each contact must be a mapping")
    return {
        "name": {
            "formatted_name": record.get("name"),
            "first_name": record.get("first_name"),
            "last_name": record.get("last_name"),
            "middle_name": record.get("middle_name"),
            "suffix": record.get("suffix"),
            "prefix": record.get("prefix"),
        },
        "birthday": record.get("birthday"),
        "phones": [
            {"phone": item.get("phone"), "wa_id": item.get("wa_id"), "type": item.get("type")}
            for item in _sequence(record, "phones")
        ],
        "emails": [
            {"email": item.get("email"), "type": item.get("type")}
            for item in _sequence(record, "emails")
        ],
        "org": {
            "company": record.get("company"),
            "department": record.get("department"),
            "title": record.get("title"),
        },
        "urls": [
            {"url": item.get("url"), "type": item.get("type")}
            for item in _sequence(record, "urls")
        ],
        "addresses": [
            {
                "street": item.get("street"),
                "city": item.get("city"),
                "state": item.get("state"),
                "zip": item.get("zip"),
                "country": item.get("country"),
                "country_code": item.get("country_code"),
                "type": item.get("type"),
            }
            for item in _sequence(record, "addresses")
        ],
    }


def build_contacts(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    contacts = [_contact(record) for record in _sequence(payload, "contacts")]
    if not contacts:
        raise InvalidInput("contacts: at least one contact is required")
    return _envelope(recipient, "contacts", contacts)


def build_catalog(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    interactive = {
        "type": "catalog_message",
        "body": {"text": _require(payload, "body_text", "catalog")},
        "action": {
            "name": "catalog_message",
            "parameters": {
                "thumbnail_product_retailer_id": _require(
                    payload, "thumbnail_product_retailer_id", "catalog"
                ),
            },
        },
    }
    return _envelope(recipient, "interactive", interactive)


def build_reaction(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    reaction = {
        "message_id": _require(payload, "message_id", "reaction"),
        "emoji": _require(payload, "emoji", "reaction"),
    }
    return _envelope(recipient, "reaction", reaction)


def build_location(recipient: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    location = {
        "longitude": _require(payload, "longitude", "location"),
        "latitude": _require(payload, "latitude", "location"),
        "name": payload.get("name"),
        "address": payload.get("address"),
    }
    return _envelope(recipient, "location", location, individual=False)


_BUILDERS: dict[MessageKind, Callable[[str, Mapping[str, Any]], dict[str, Any]]] = {
    MessageKind.TEXT: build_text,
    MessageKind.IMAGE: build_image,
    MessageKind.VIDEO: build_video,
    MessageKind.AUDIO: build_audio,
    MessageKind.DOCUMENT: build_document,
    MessageKind.LIST: build_list,
    MessageKind.LISTS: build_lists,
    MessageKind.BUTTONS: build_buttons,
    MessageKind.BUTTONS_TEXT: build_buttons_text,
    MessageKind.BUTTONS_MEDIA: build_buttons_media,
    MessageKind.TEMPLATE: build_template,
    MessageKind.CONTACTS: build_contacts,
    MessageKind.CATALOG: build_catalog,
    MessageKind.REACTION: build_reaction,
    MessageKind.LOCATION: build_location,
}


def build_message_body(request: SendRequest) -> dict[str, Any]:
    """Map a send request to its ``/messages`` body.

    Raises:
        InvalidInput: empty recipient or a payload missing required fields.
    """
    if not isinstance(request.recipient, str) or not request.recipient.strip():
        raise InvalidInput("recipient is required")
    return _BUILDERS[request.kind](request.recipient, request.payload)
