# src/media_drop/tasks/scheduling_service.py

from __future__ import annotations

import logging
from datetime import datetime

from ..core.errors import ChannelUnavailable, RejectReason, ValidationError
from ..core.ports import BlobStore, ChannelStatus, Destination, MessageDelivery
from .task_models import CancelResult, ScheduledTask
from .task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def parse_schedule_time(raw: str | datetime) -> datetime:
    """
    Parse an ISO 8601 timestamp coming from a form field.

    Naive values are read as server-local time (what a browser's datetime-local input sends).
    A trailing "Z" is accepted.
    """
    if isinstance(raw, datetime):
        value = raw
    else:
        text = raw.strip()
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(RejectReason.INVALID_TIME, f"Invalid scheduleTime: {text!r}") from None
    if value.tzinfo is None:
        try:
            value = value.astimezone()
        except (ValueError, OverflowError):
            # Local offset cannot be applied at the edges of the datetime range.
            raise ValidationError(RejectReason.INVALID_TIME, f"scheduleTime out of range: {value.isoformat()}") from None
    return value


class SchedulingService:
    """
    Glue between the HTTP boundary and the TaskRegistry.

    Owns input validation and the "no orphaned uploads" rule: whenever a schedule request is
    rejected, the file that was already stored for it is deleted before the error propagates.
    """

    def __init__(
            self,
            registry: TaskRegistry,
            blob_store: BlobStore,
            channel: ChannelStatus,
            delivery: MessageDelivery,
    ) -> None:
        self._registry = registry
        self._blobs = blob_store
        self._channel = channel
        self._delivery = delivery

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    def request_schedule(
            self,
            *,
            destination: str | None,
            payload_ref: str | None,
            schedule_time: str | datetime | None,
            task_id: str | None,
    ) -> ScheduledTask:
        try:
            if not payload_ref:
                raise ValidationError(RejectReason.NO_FILE, "No file")

            missing = [
                name
                for name, value in (("groupId", destination), ("scheduleTime", schedule_time), ("uiId", task_id))
                if value is None or (isinstance(value, str) and not value.strip())
            ]
            if missing or destination is None or task_id is None or schedule_time is None:
                raise ValidationError(
                    RejectReason.MISSING_FIELD,
                    f"Missing required field(s): {', '.join(missing)}",
                )

            trigger_at = parse_schedule_time(schedule_time)

            return self._registry.schedule(task_id, destination.strip(), payload_ref, trigger_at)

        except ValidationError as e:
            logger.info("Schedule request rejected (%s): %s", e.reason.value, e.message)
            if payload_ref:
                self._discard_upload(payload_ref)
            raise

        except BaseException:
            logger.exception("Schedule request failed unexpectedly; discarding upload")
            if payload_ref:
                self._discard_upload(payload_ref)
            raise

    def request_cancel(self, task_id: str | None) -> CancelResult:
        if not task_id:
            return CancelResult.NOT_FOUND
        return self._registry.cancel(task_id)

    def task_status(self, task_id: str) -> ScheduledTask | None:
        return self._registry.get(task_id)

    def list_scheduled(self) -> list[ScheduledTask]:
        return self._registry.list_pending()

    def query_readiness(self) -> bool:
        return self._channel.is_ready()

    async def list_destinations(self) -> list[Destination]:
        if not self._channel.is_ready():
            raise ChannelUnavailable("Not ready")
        return await self._delivery.list_destinations()

    def _discard_upload(self, payload_ref: str) -> None:
        try:
            self._blobs.delete(payload_ref)
        except OSError:
            logger.exception("Failed to delete rejected upload %s", payload_ref)
