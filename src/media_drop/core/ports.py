# src/media_drop/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the scheduling core.

The core depends on Protocols instead of concrete implementations.
This keeps the chat transport, file storage and notification transport swappable
and makes testing easier.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, BinaryIO, Callable, Protocol

ReadinessListener = Callable[[bool], None]


@dataclass(slots=True, frozen=True)
class Destination:
    """A place media can be delivered to (a chat room/group)."""

    name: str
    id: str


class MessageDelivery(Protocol):
    """
    Connector-side port: how the registry hands a stored payload to the chat transport.

    Implementations raise DeliveryFailure (or any exception) when the payload could not be delivered.
    """

    def send_media(self, destination: str, payload_ref: str) -> Awaitable[None]: ...

    def list_destinations(self) -> Awaitable[list[Destination]]: ...


class BlobStore(Protocol):
    """Raw storage for uploaded payloads. Refs are opaque strings owned by one task at a time."""

    def save(self, original_name: str, stream: BinaryIO) -> str: ...
    def delete(self, payload_ref: str) -> bool: ...
    def exists(self, payload_ref: str) -> bool: ...
    def path_of(self, payload_ref: str) -> Path: ...


class EventSink(Protocol):
    """Publish-only notification channel (message_sent, ready, ...)."""

    def publish(self, event: str, data: Any) -> None: ...


class ChannelStatus(Protocol):
    def is_ready(self) -> bool: ...
    def subscribe(self, listener: ReadinessListener) -> Callable[[], None]: ...
