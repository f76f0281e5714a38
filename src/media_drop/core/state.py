# src/media_drop/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..core.ports import ChannelStatus, MessageDelivery
from ..events.hub import EventHub
from ..storage.blob_store import LocalBlobStore
from ..tasks.scheduling_service import SchedulingService
from ..tasks.task_registry import TaskRegistry

if TYPE_CHECKING:
    from ..connectors.matrix_connector import MatrixConnector


@dataclass
class AppState:
    # Settings object (config.Settings in production, SimpleNamespace in tests).
    settings: Any

    blob_store: LocalBlobStore
    events: EventHub
    channel: ChannelStatus
    delivery: MessageDelivery
    registry: TaskRegistry
    service: SchedulingService

    # Background session owner; None when Matrix is disabled.
    connector: MatrixConnector | None = None
