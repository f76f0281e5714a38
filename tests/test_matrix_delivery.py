# tests/test_matrix_delivery.py

from __future__ import annotations

import io
from types import SimpleNamespace
from typing import Any

import pytest
from nio import RoomSendError, RoomSendResponse, UploadError, UploadResponse

from media_drop.connectors import matrix_delivery
from media_drop.connectors.matrix_delivery import MatrixDelivery, display_name, msgtype_for
from media_drop.core.errors import DeliveryFailure
from media_drop.core.ports import Destination


class FakeClient:
    def __init__(self) -> None:
        self.rooms: dict[str, Any] = {
            "!fam:example.org": SimpleNamespace(display_name="family", encrypted=False),
            "!work:example.org": SimpleNamespace(display_name="Work", encrypted=True),
        }
        self.uploads: list[dict[str, Any]] = []
        self.sent: list[dict[str, Any]] = []
        self.upload_response: Any = UploadResponse("mxc://example.org/abc")
        self.send_response: Any = RoomSendResponse("$event", "!fam:example.org")

    async def upload(self, fh, **kwargs):
        self.uploads.append({"data": fh.read(), **kwargs})
        keys = {"key": {"k": "secret"}, "iv": "iv", "hashes": {"sha256": "h"}} if kwargs.get("encrypt") else None
        return self.upload_response, keys

    async def room_send(self, **kwargs):
        self.sent.append(kwargs)
        return self.send_response


class FakeConnector:
    def __init__(self, client: FakeClient | None, *, ready: bool = True, allowed_rooms: set[str] | None = None) -> None:
        self.client = client
        self.ready = ready
        self.allowed_rooms = allowed_rooms

    def is_ready(self) -> bool:
        return self.ready


@pytest.fixture()
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture()
def photo_ref(blob_store) -> str:
    return blob_store.save("beach.jpg", io.BytesIO(b"\xff\xd8jpeg"))


def test_display_name_and_msgtype() -> None:
    assert display_name("1712345678901-beach.jpg") == "beach.jpg"
    assert display_name("1712345678901-2-beach.jpg") == "beach.jpg"
    assert display_name("1712345678901-") == "1712345678901-"
    assert msgtype_for("image/png") == "m.image"
    assert msgtype_for("video/mp4") == "m.video"
    assert msgtype_for("audio/ogg") == "m.audio"
    assert msgtype_for("application/pdf") == "m.file"


@pytest.mark.asyncio
async def test_send_media_uploads_then_posts_image(client, blob_store, photo_ref) -> None:
    delivery = MatrixDelivery(FakeConnector(client), blob_store)

    await delivery.send_media("!fam:example.org", photo_ref)

    (upload,) = client.uploads
    assert upload["data"] == b"\xff\xd8jpeg"
    assert upload["content_type"] == "image/jpeg"
    assert upload["filename"] == "beach.jpg"
    assert upload["encrypt"] is False
    assert upload["filesize"] == 6

    (sent,) = client.sent
    assert sent["room_id"] == "!fam:example.org"
    assert sent["message_type"] == "m.room.message"
    assert sent["content"] == {
        "msgtype": "m.image",
        "body": "beach.jpg",
        "info": {"mimetype": "image/jpeg", "size": 6},
        "url": "mxc://example.org/abc",
    }


@pytest.mark.asyncio
async def test_encrypted_room_gets_encrypted_file(client, blob_store, photo_ref, monkeypatch) -> None:
    monkeypatch.setattr(matrix_delivery, "OLM_AVAILABLE", True)
    delivery = MatrixDelivery(FakeConnector(client), blob_store)

    await delivery.send_media("!work:example.org", photo_ref)

    assert client.uploads[0]["encrypt"] is True
    content = client.sent[0]["content"]
    assert "url" not in content
    assert content["file"]["url"] == "mxc://example.org/abc"
    assert content["file"]["iv"] == "iv"


@pytest.mark.asyncio
async def test_not_ready_channel_fails_without_upload(client, blob_store, photo_ref) -> None:
    delivery = MatrixDelivery(FakeConnector(client, ready=False), blob_store)

    with pytest.raises(DeliveryFailure, match="not ready"):
        await delivery.send_media("!fam:example.org", photo_ref)
    assert client.uploads == []


@pytest.mark.asyncio
async def test_room_outside_allowlist_is_refused(client, blob_store, photo_ref) -> None:
    delivery = MatrixDelivery(FakeConnector(client, allowed_rooms={"!work:example.org"}), blob_store)

    with pytest.raises(DeliveryFailure, match="allowlist"):
        await delivery.send_media("!fam:example.org", photo_ref)
    assert client.uploads == []


@pytest.mark.asyncio
async def test_upload_error_is_delivery_failure(client, blob_store, photo_ref) -> None:
    client.upload_response = UploadError("too large")
    delivery = MatrixDelivery(FakeConnector(client), blob_store)

    with pytest.raises(DeliveryFailure, match="upload failed: too large"):
        await delivery.send_media("!fam:example.org", photo_ref)
    assert client.sent == []


@pytest.mark.asyncio
async def test_send_error_is_delivery_failure(client, blob_store, photo_ref) -> None:
    client.send_response = RoomSendError("forbidden")
    delivery = MatrixDelivery(FakeConnector(client), blob_store)

    with pytest.raises(DeliveryFailure, match="send failed: forbidden"):
        await delivery.send_media("!fam:example.org", photo_ref)


@pytest.mark.asyncio
async def test_list_destinations_sorted_and_filtered(client, blob_store) -> None:
    assert await MatrixDelivery(FakeConnector(client), blob_store).list_destinations() == [
        Destination(name="family", id="!fam:example.org"),
        Destination(name="Work", id="!work:example.org"),
    ]

    filtered = MatrixDelivery(FakeConnector(client, allowed_rooms={"!work:example.org"}), blob_store)
    assert await filtered.list_destinations() == [Destination(name="Work", id="!work:example.org")]

    assert await MatrixDelivery(FakeConnector(None), blob_store).list_destinations() == []
