# tests/conftest.py

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from media_drop.storage.blob_store import LocalBlobStore
from media_drop.tasks.scheduling_service import SchedulingService
from media_drop.tasks.task_registry import TaskRegistry

from .fakes import FakeChannel, FakeDelivery, RecordingSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap and the server.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="media-drop-test",
        data_dir=tmp_path,
        upload_dir=tmp_path / "uploads",
        matrix_store_path=tmp_path / "matrix_store",
        cors_origins=["*"],
        keep_failed_payloads=False,
        matrix_enabled=False,
        matrix_homeserver="",
        matrix_user_id="",
        matrix_rooms=[],
        matrix_reconnect_seconds=0.01,
    )


@pytest.fixture()
def blob_store(settings: SimpleNamespace) -> LocalBlobStore:
    return LocalBlobStore(settings.upload_dir)


@pytest.fixture()
def store_file(blob_store: LocalBlobStore) -> Callable[..., str]:
    def _store(name: str = "photo.jpg", data: bytes = b"\xff\xd8fake-jpeg") -> str:
        return blob_store.save(name, io.BytesIO(data))

    return _store


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def delivery() -> FakeDelivery:
    return FakeDelivery()


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel(ready=False)


@pytest.fixture()
def registry(delivery: FakeDelivery, blob_store: LocalBlobStore, sink: RecordingSink) -> TaskRegistry:
    return TaskRegistry(delivery, blob_store, sink)


@pytest.fixture()
def service(
    registry: TaskRegistry,
    blob_store: LocalBlobStore,
    channel: FakeChannel,
    delivery: FakeDelivery,
) -> SchedulingService:
    return SchedulingService(registry, blob_store, channel, delivery)
