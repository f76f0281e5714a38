# src/media_drop/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from nio import AsyncClient, SyncError

from ..core.ports import EventSink, ReadinessListener
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)

SYNC_TIMEOUT_MS = 30000

ClientFactory = Callable[[Any], Awaitable[AsyncClient | None]]


class MatrixSyncError(ConnectionError):
    pass


def room_allowlist(settings_rooms: list[str] | None) -> set[str] | None:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


class MatrixConnector:
    """
    Keeps a Matrix session alive and reports whether the channel is usable.

    Implements the ChannelStatus port:
    - is_ready() is True between a successful initial sync and the next sync failure;
    - transitions are published to the EventSink as `ready(bool)` and `disconnected(reason)`
      and pushed to subscribed listeners.

    Lifecycle: login -> initial sync -> sync loop. On any sync failure the client is closed,
    the channel goes not-ready, and after `matrix_reconnect_seconds` a fresh client is built
    (the stored session is reused, so this does not create new devices).
    """

    def __init__(
            self,
            settings,
            events: EventSink,
            *,
            client_factory: ClientFactory = create_matrix_client,
    ) -> None:
        self._settings = settings
        self._events = events
        self._client_factory = client_factory
        self._reconnect_s = max(0.01, float(getattr(settings, "matrix_reconnect_seconds", 5.0)))
        self.allowed_rooms = room_allowlist(getattr(settings, "matrix_rooms", []))

        self._client: AsyncClient | None = None
        self._ready = False
        self._listeners: list[ReadinessListener] = []
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def client(self) -> AsyncClient | None:
        return self._client

    # ---- ChannelStatus ----

    def is_ready(self) -> bool:
        return self._ready

    def subscribe(self, listener: ReadinessListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def _set_ready(self, ready: bool, reason: str | None = None) -> None:
        if ready == self._ready:
            return
        self._ready = ready

        if ready:
            logger.info("Matrix channel ready")
        else:
            logger.warning("Matrix channel disconnected: %s", reason)
            self._events.publish("disconnected", reason or "unknown")
        self._events.publish("ready", ready)

        for listener in list(self._listeners):
            try:
                listener(ready)
            except Exception:
                logger.exception("Readiness listener failed")

    # ---- lifecycle ----

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stop.clear()
        self._task = asyncio.create_task(self.run(), name="matrix-connector")

    async def stop(self) -> None:
        self._stop.set()
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._set_ready(False, "shutdown")

    async def run(self) -> None:
        if not self._settings.matrix_homeserver or not self._settings.matrix_user_id:
            logger.error("Matrix is enabled but not configured (homeserver/user_id); connector not started.")
            return

        logger.info(
            "Matrix connector starting (user=%s, homeserver=%s, allowed_rooms=%s)",
            self._settings.matrix_user_id,
            self._settings.matrix_homeserver,
            self.allowed_rooms if self.allowed_rooms is not None else "ALL",
        )

        while not self._stop.is_set():
            client = await self._client_factory(self._settings)
            if client is None:
                self._set_ready(False, "login failed")
            else:
                self._client = client
                try:
                    await self._sync_forever(client)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.exception("Matrix sync loop failed")
                    self._set_ready(False, str(e) or type(e).__name__)
                finally:
                    self._client = None
                    with contextlib.suppress(Exception):
                        await client.close()

            if self._stop.is_set():
                break
            logger.info("Matrix reconnect in %.1fs", self._reconnect_s)
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=self._reconnect_s)

        logger.info("Matrix connector stopped.")

    async def _sync_forever(self, client: AsyncClient) -> None:
        logger.info("Matrix initial sync...")
        await self._sync_once(client, full_state=True)
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))
        self._set_ready(True)

        while not self._stop.is_set():
            await self._sync_once(client, full_state=False)

    @staticmethod
    async def _sync_once(client: AsyncClient, *, full_state: bool) -> None:
        resp = await client.sync(timeout=SYNC_TIMEOUT_MS, full_state=full_state)
        if isinstance(resp, SyncError):
            raise MatrixSyncError(f"sync failed: {resp.message}")
