# src/media_drop/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TaskState(StrEnum):
    """
    Scheduled task lifecycle.

    Notes:
    - "delivering" is the internal claim taken by the timer before it awaits the transport.
      Once a task is delivering, cancel() no longer sees it.
    - sent / cancelled / failed are terminal and mutually exclusive.
    """

    PENDING = "pending"
    DELIVERING = "delivering"
    SENT = "sent"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.SENT, TaskState.CANCELLED, TaskState.FAILED)


class CancelResult(StrEnum):
    CANCELLED = "Cancelled"
    NOT_FOUND = "NotFound"


@dataclass(slots=True)
class ScheduledTask:
    id: str
    destination: str
    payload_ref: str
    trigger_at: datetime
    created_at: datetime

    state: TaskState = TaskState.PENDING
    error: str | None = None

    def delay_seconds(self, now: datetime) -> float:
        return (self.trigger_at - now).total_seconds()

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "destination": self.destination,
            "triggerAt": self.trigger_at.isoformat(),
            "status": self.state.value,
        }
