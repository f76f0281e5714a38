# src/media_drop/connectors/matrix_delivery.py

from __future__ import annotations

import logging
import mimetypes
import re
from typing import Any

from nio import RoomSendResponse, UploadResponse

from ..core.errors import DeliveryFailure
from ..core.ports import BlobStore, Destination
from .matrix_client import OLM_AVAILABLE
from .matrix_connector import MatrixConnector

logger = logging.getLogger(__name__)

_STORED_PREFIX = re.compile(r"^\d+-(?:\d+-)?")


def display_name(stored_name: str) -> str:
    """Strip the "<epoch-ms>-" prefix the blob store adds, falling back to the stored name."""
    return _STORED_PREFIX.sub("", stored_name) or stored_name


def msgtype_for(mime: str) -> str:
    major = mime.split("/", 1)[0]
    if major == "image":
        return "m.image"
    if major == "video":
        return "m.video"
    if major == "audio":
        return "m.audio"
    return "m.file"


class MatrixDelivery:
    """
    MessageDelivery over Matrix.

    A payload is uploaded to the homeserver media repository and posted into the destination room
    as m.image / m.video / m.audio / m.file depending on its MIME type. Rooms marked encrypted get
    an encrypted upload when python-olm is available.
    """

    def __init__(self, connector: MatrixConnector, blob_store: BlobStore) -> None:
        self._connector = connector
        self._blobs = blob_store

    async def send_media(self, destination: str, payload_ref: str) -> None:
        client = self._connector.client
        if client is None or not self._connector.is_ready():
            raise DeliveryFailure(destination, "Matrix channel is not ready")

        allowed = self._connector.allowed_rooms
        if allowed is not None and destination not in allowed:
            raise DeliveryFailure(destination, "room is not in the allowlist")

        path = self._blobs.path_of(payload_ref)
        name = display_name(path.name)
        mime = mimetypes.guess_type(name)[0] or "application/octet-stream"
        size = path.stat().st_size

        room = client.rooms.get(destination)
        encrypt = bool(room is not None and room.encrypted and OLM_AVAILABLE)

        with path.open("rb") as fh:
            upload, keys = await client.upload(
                fh,
                content_type=mime,
                filename=name,
                encrypt=encrypt,
                filesize=size,
            )
        if not isinstance(upload, UploadResponse):
            raise DeliveryFailure(destination, f"upload failed: {getattr(upload, 'message', upload)}")

        content: dict[str, Any] = {
            "msgtype": msgtype_for(mime),
            "body": name,
            "info": {"mimetype": mime, "size": size},
        }
        if encrypt and keys:
            content["file"] = {"url": upload.content_uri, **keys}
        else:
            content["url"] = upload.content_uri

        resp = await client.room_send(
            room_id=destination,
            message_type="m.room.message",
            content=content,
            ignore_unverified_devices=True,
        )
        if not isinstance(resp, RoomSendResponse):
            raise DeliveryFailure(destination, f"send failed: {getattr(resp, 'message', resp)}")

        logger.info("Posted %s (%s, %d bytes) to %s as %s", name, mime, size, destination, resp.event_id)

    async def list_destinations(self) -> list[Destination]:
        client = self._connector.client
        if client is None:
            return []

        allowed = self._connector.allowed_rooms
        out = [
            Destination(name=room.display_name, id=room_id)
            for room_id, room in client.rooms.items()
            if allowed is None or room_id in allowed
        ]
        out.sort(key=lambda d: (d.name.lower(), d.id))
        return out
