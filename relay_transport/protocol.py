"""Wire payloads for the relay push service.

All request and response bodies are UTF-8 JSON objects, except attachment
contents which travel as raw octet streams.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, TypeGuard

from .errors import RelayProtocolError


def _is_protocol_iterable(value: Any) -> TypeGuard[Iterable[Any]]:
    """Return True when value is a non-string iterable."""
    return not isinstance(value, (str, bytes)) and isinstance(value, Iterable)


@dataclass(frozen=True)
class AttachmentPayload:
    """Raw attachment contents for a single transfer."""

    data: bytes


@dataclass(frozen=True)
class AttachmentReference:
    """Server-issued identifier of an uploaded attachment."""

    id: str


@dataclass(frozen=True)
class OutgoingMessage:
    """Message submitted to /v1/messages/.

    Attributes:
        recipients: Recipient identifiers, in caller order.
        body: Message text.
        attachment_ids: Identifiers of previously uploaded attachments.
    """

    recipients: tuple[str, ...]
    body: str
    attachment_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.recipients:
            raise ValueError("At least one recipient is required")


@dataclass(frozen=True)
class DirectorySnapshotDescriptor:
    """Location and filter parameters of a directory snapshot."""

    download_url: str
    capacity: int
    hash_count: int
    version: int


@dataclass(frozen=True)
class MessageResponse:
    """Per-recipient delivery result of a message submission."""

    failure: tuple[str, ...] = field(default_factory=tuple)


def normalize_recipients(recipients: str | Iterable[str]) -> tuple[str, ...]:
    """Accept a single recipient or an iterable of recipients."""
    if isinstance(recipients, str):
        return (recipients,)
    if not _is_protocol_iterable(recipients):
        raise ValueError("Recipients must be a string or an iterable of strings")
    return tuple(recipients)


def encode_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def build_message_body(message: OutgoingMessage) -> dict[str, Any]:
    """Serialize an outgoing message."""
    return {
        "recipients": list(message.recipients),
        "text": message.body,
        "attachmentIds": list(message.attachment_ids),
    }


def build_token_body(token: str) -> dict[str, Any]:
    """Serialize a push token registration."""
    if not token:
        raise ValueError("token is required")
    return {"gcmRegistrationId": token}


def _decode_object(text: str, what: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except ValueError as err:
        raise RelayProtocolError(f"Malformed {what} response body") from err
    if not isinstance(data, dict):
        raise RelayProtocolError(f"Expected JSON object in {what} response")
    return data


def parse_message_response(text: str) -> MessageResponse:
    """Parse the /v1/messages/ response.

    An absent ``failure`` list means every recipient was accepted.
    """
    data = _decode_object(text, "message")
    failure = data.get("failure") or []
    if not _is_protocol_iterable(failure):
        raise RelayProtocolError("Message response failure field must be a list")
    return MessageResponse(failure=tuple(str(recipient) for recipient in failure))


def parse_attachment_descriptor(text: str) -> str:
    """Extract the attachment id from an allocation response."""
    data = _decode_object(text, "attachment allocation")
    attachment_id = data.get("id")
    if attachment_id is None or attachment_id == "":
        raise RelayProtocolError("Attachment allocation response is missing id")
    return str(attachment_id)


def parse_directory_descriptor(text: str) -> DirectorySnapshotDescriptor:
    """Parse the /v1/directory/ response."""
    data = _decode_object(text, "directory")
    try:
        return DirectorySnapshotDescriptor(
            download_url=str(data["url"]),
            capacity=int(data["capacity"]),
            hash_count=int(data["hashCount"]),
            version=int(data["version"]),
        )
    except KeyError as err:
        raise RelayProtocolError(f"Directory response is missing {err.args[0]}") from err
    except (TypeError, ValueError) as err:
        raise RelayProtocolError("Directory response has non-integer fields") from err
