# tests/test_bootstrap.py

from __future__ import annotations

import logging

import pytest

from media_drop.cli.bootstrap import create_initial_state
from media_drop.connectors.matrix_connector import MatrixConnector
from media_drop.connectors.offline import OfflineChannel
from media_drop.core.errors import DeliveryFailure
from media_drop.logging_setup import _ConsoleNoiseFilter


def test_offline_state_when_matrix_disabled(settings) -> None:
    state = create_initial_state(settings=settings)

    assert isinstance(state.channel, OfflineChannel)
    assert state.delivery is state.channel
    assert state.connector is None
    assert settings.upload_dir.is_dir()
    assert state.blob_store.root == settings.upload_dir.resolve()
    assert state.service.query_readiness() is False

    with state.events.subscribe() as queue:
        assert queue.get_nowait().to_dict() == {"event": "ready", "data": False}


def test_matrix_state_when_enabled(settings) -> None:
    settings.matrix_enabled = True

    state = create_initial_state(settings=settings)

    assert isinstance(state.connector, MatrixConnector)
    assert state.channel is state.connector
    assert state.connector.allowed_rooms is None


@pytest.mark.asyncio
async def test_offline_delivery_always_fails() -> None:
    offline = OfflineChannel()

    with pytest.raises(DeliveryFailure, match="MEDIADROP_MATRIX_ENABLED"):
        await offline.send_media("!room:x", "/tmp/nothing")
    assert await offline.list_destinations() == []


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("media_drop.tasks.task_registry", logging.DEBUG, True),
        ("uvicorn.access", logging.INFO, False),
        ("uvicorn.error", logging.INFO, True),
        ("nio.responses", logging.INFO, False),
        ("nio.client", logging.WARNING, True),
        ("asyncio", logging.WARNING, False),
        ("asyncio", logging.ERROR, True),
    ],
)
def test_console_noise_filter(name: str, level: int, shown: bool) -> None:
    record = logging.LogRecord(name, level, __file__, 1, "msg", None, None)
    assert _ConsoleNoiseFilter().filter(record) is shown


def test_offline_channel_never_notifies() -> None:
    offline = OfflineChannel()
    seen: list[bool] = []

    unsubscribe = offline.subscribe(seen.append)
    unsubscribe()

    assert seen == []
    assert offline.is_ready() is False
