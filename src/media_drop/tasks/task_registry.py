# src/media_drop/tasks/task_registry.py

from __future__ import annotations

"""
Task registry.

Owns every pending delivery:
- maps task id -> ScheduledTask,
- arms one cancellable timer per task on the event loop,
- at trigger time claims the task and hands the payload to the injected MessageDelivery port,
- on cancel disarms the timer and deletes the payload.

Concurrency model:
- the registry is bound to a single asyncio event loop (the one the HTTP server runs on);
- every mutation of the pending map runs synchronously on that loop, with no await between
  the "is it still pending" check and the removal. That makes cancel() and the timer
  callback atomic relative to each other: whichever runs first wins, the other sees nothing.

Delivery transport, storage and notifications are ports; this module never touches Matrix or HTTP.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from ..core.errors import DuplicateTask, RejectReason, ValidationError
from ..core.ports import BlobStore, EventSink, MessageDelivery
from .task_models import CancelResult, ScheduledTask, TaskState

logger = logging.getLogger(__name__)

EVENT_MESSAGE_SENT = "message_sent"
EVENT_MESSAGE_FAILED = "message_failed"

PAST_TIME_MESSAGE = "Scheduled time is in the past."


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaskRegistry:
    def __init__(
            self,
            delivery: MessageDelivery,
            blob_store: BlobStore,
            events: EventSink,
            *,
            keep_failed_payloads: bool = False,
            clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._delivery = delivery
        self._blobs = blob_store
        self._events = events
        self._keep_failed_payloads = keep_failed_payloads
        self._clock = clock

        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: dict[str, ScheduledTask] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

        # Claimed by the timer, delivery in progress.
        self._in_flight: dict[str, ScheduledTask] = {}
        self._jobs: dict[str, asyncio.Task[None]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._pending

    # ---- public API ----

    def schedule(
            self,
            task_id: str,
            destination: str,
            payload_ref: str,
            trigger_at: datetime,
    ) -> ScheduledTask:
        """
        Register a pending task and arm its timer.

        Raises:
            ValidationError: empty id/destination/payload, or trigger_at not strictly in the future.
            DuplicateTask: a task with this id is pending or currently being delivered.

        Must be called from the event loop the registry is bound to (first call binds it).
        """
        loop = self._bind_loop()

        if not (task_id or "").strip():
            raise ValidationError(RejectReason.MISSING_FIELD, "Task id is required.")
        if not (destination or "").strip():
            raise ValidationError(RejectReason.MISSING_FIELD, "Destination is required.")
        if not payload_ref:
            raise ValidationError(RejectReason.NO_FILE, "No file")

        if trigger_at.tzinfo is None:
            try:
                trigger_at = trigger_at.astimezone()
            except (ValueError, OverflowError):
                raise ValidationError(RejectReason.INVALID_TIME, f"Trigger time out of range: {trigger_at.isoformat()}") from None

        now = self._clock()
        delay = (trigger_at - now).total_seconds()
        if delay <= 0:
            raise ValidationError(RejectReason.PAST_TIME, PAST_TIME_MESSAGE)

        if task_id in self._pending or task_id in self._in_flight:
            raise DuplicateTask(task_id)

        task = ScheduledTask(
            id=task_id,
            destination=destination,
            payload_ref=payload_ref,
            trigger_at=trigger_at,
            created_at=now,
        )
        self._timers[task_id] = loop.call_later(delay, self._fire, task_id)
        self._pending[task_id] = task

        logger.info(
            "Task %s scheduled destination=%s trigger_at=%s delay=%.3fs",
            task_id,
            destination,
            trigger_at.isoformat(),
            delay,
        )
        return task

    def cancel(self, task_id: str) -> CancelResult:
        """
        Cancel a pending task: disarm its timer, delete its payload, forget it.

        Returns NOT_FOUND when the id is unknown, already cancelled, or already claimed by its timer
        (in which case the payload belongs to the delivery path and is left alone).
        """
        task = self._pending.pop(task_id, None)
        if task is None:
            logger.info("Cancel for task %s: not found", task_id)
            return CancelResult.NOT_FOUND

        handle = self._timers.pop(task_id, None)
        if handle is not None:
            handle.cancel()

        task.state = TaskState.CANCELLED
        self._release_payload(task)
        logger.info("Task %s cancelled", task_id)
        return CancelResult.CANCELLED

    def get(self, task_id: str) -> ScheduledTask | None:
        """Pending or in-flight task, None once it reached a terminal state."""
        return self._pending.get(task_id) or self._in_flight.get(task_id)

    def list_pending(self) -> list[ScheduledTask]:
        return sorted(self._pending.values(), key=lambda t: (t.trigger_at, t.created_at))

    async def aclose(self) -> None:
        """
        Disarm every timer and stop in-flight deliveries.

        Shutdown is not a terminal transition: payload files stay on disk so they can be recovered.
        """
        for handle in self._timers.values():
            handle.cancel()
        if self._pending:
            logger.warning(
                "Registry closing with %d pending task(s); they will not be delivered: %s",
                len(self._pending),
                ", ".join(sorted(self._pending)),
            )
        self._timers.clear()
        self._pending.clear()

        jobs = list(self._jobs.values())
        for job in jobs:
            job.cancel()
        if jobs:
            await asyncio.gather(*jobs, return_exceptions=True)

    # ---- timer protocol ----

    def _fire(self, task_id: str) -> None:
        self._timers.pop(task_id, None)

        # Claim: once popped, cancel() can no longer reach this task.
        task = self._pending.pop(task_id, None)
        if task is None:
            return

        task.state = TaskState.DELIVERING
        self._in_flight[task_id] = task

        # Timer callbacks run on the bound loop.
        self._jobs[task_id] = asyncio.get_running_loop().create_task(self._deliver(task), name=f"deliver:{task_id}")

    async def _deliver(self, task: ScheduledTask) -> None:
        try:
            if not self._blobs.exists(task.payload_ref):
                raise FileNotFoundError(f"payload {task.payload_ref} is missing")

            await self._delivery.send_media(task.destination, task.payload_ref)

        except asyncio.CancelledError:
            logger.warning("Delivery of task %s interrupted by shutdown", task.id)
            raise

        except Exception as e:
            task.state = TaskState.FAILED
            task.error = str(e) or type(e).__name__
            logger.exception("Delivery failed task_id=%s destination=%s", task.id, task.destination)
            self._events.publish(EVENT_MESSAGE_FAILED, {"id": task.id, "error": task.error})

            if self._keep_failed_payloads:
                logger.warning("Keeping payload of failed task %s at %s", task.id, task.payload_ref)
            else:
                self._release_payload(task)

        else:
            task.state = TaskState.SENT
            logger.info("Task %s sent to %s", task.id, task.destination)
            self._events.publish(EVENT_MESSAGE_SENT, {"id": task.id})
            self._release_payload(task)

        finally:
            self._in_flight.pop(task.id, None)
            self._jobs.pop(task.id, None)

    # ---- helpers ----

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        if self._loop is None:
            self._loop = loop
        elif self._loop is not loop:
            raise RuntimeError("TaskRegistry is bound to a different event loop")
        return loop

    def _release_payload(self, task: ScheduledTask) -> None:
        try:
            self._blobs.delete(task.payload_ref)
        except OSError:
            logger.exception("Failed to delete payload %s of task %s", task.payload_ref, task.id)
