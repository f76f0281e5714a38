# src/media_drop/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete collaborators (upload dir, event hub, Matrix or offline channel) into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.offline import OfflineChannel
from ..core.ports import ChannelStatus, MessageDelivery
from ..core.state import AppState
from ..events.hub import EventHub
from ..storage.blob_store import LocalBlobStore
from ..tasks.scheduling_service import SchedulingService
from ..tasks.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    blob_store = LocalBlobStore(settings.upload_dir)
    events = EventHub()

    channel: ChannelStatus
    delivery: MessageDelivery
    connector = None
    if settings.matrix_enabled:
        from ..connectors.matrix_connector import MatrixConnector
        from ..connectors.matrix_delivery import MatrixDelivery

        connector = MatrixConnector(settings, events)
        channel = connector
        delivery = MatrixDelivery(connector, blob_store)
    else:
        logger.warning("Matrix connector disabled: scheduled media will fail at send time.")
        offline = OfflineChannel()
        channel = offline
        delivery = offline

    # New WebSocket subscribers always get a readiness snapshot first.
    events.publish("ready", channel.is_ready())

    registry = TaskRegistry(
        delivery,
        blob_store,
        events,
        keep_failed_payloads=bool(getattr(settings, "keep_failed_payloads", False)),
    )
    service = SchedulingService(registry, blob_store, channel, delivery)

    return AppState(
        settings=settings,
        blob_store=blob_store,
        events=events,
        channel=channel,
        delivery=delivery,
        registry=registry,
        service=service,
        connector=connector,
    )
