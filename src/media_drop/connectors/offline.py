# src/media_drop/connectors/offline.py

from __future__ import annotations

from collections.abc import Callable

from ..core.errors import DeliveryFailure
from ..core.ports import Destination, ReadinessListener


class OfflineChannel:
    """
    Stand-in transport used when Matrix is disabled.

    Behavior:
    - the channel is never ready, so /destinations answers 503;
    - scheduling still works, but every task fails at fire time with a clear error.
    """

    def is_ready(self) -> bool:
        return False

    def subscribe(self, listener: ReadinessListener) -> Callable[[], None]:
        return lambda: None

    async def send_media(self, destination: str, payload_ref: str) -> None:
        raise DeliveryFailure(
            destination,
            "no delivery channel configured; set MEDIADROP_MATRIX_ENABLED=true",
        )

    async def list_destinations(self) -> list[Destination]:
        return []
