# src/media_drop/core/errors.py

"""
Error taxonomy shared by the scheduling core and the HTTP layer.

Validation, duplicate and not-found errors are returned to the caller of the
same request. DeliveryFailure only happens at fire time, when there is no
caller left; it is logged and published as an event.
"""

from __future__ import annotations

from enum import StrEnum


class RejectReason(StrEnum):
    NO_FILE = "NoFile"
    MISSING_FIELD = "MissingField"
    INVALID_TIME = "InvalidTime"
    PAST_TIME = "PastTime"
    DUPLICATE = "Duplicate"


class MediaDropError(Exception):
    """Base class for all errors raised by media_drop."""


class ValidationError(MediaDropError):
    """Bad or missing input. Surfaced to the caller, never retried."""

    def __init__(self, reason: RejectReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


class DuplicateTask(ValidationError):
    def __init__(self, task_id: str) -> None:
        super().__init__(RejectReason.DUPLICATE, f"A task with id {task_id!r} is already scheduled.")
        self.task_id = task_id


class NotFoundError(MediaDropError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id!r} not found")
        self.task_id = task_id


class ChannelUnavailable(MediaDropError):
    """The delivery channel is not connected yet (or lost its connection)."""


class DeliveryFailure(MediaDropError):
    """The delivery collaborator could not transmit a payload."""

    def __init__(self, destination: str, message: str) -> None:
        super().__init__(f"delivery to {destination} failed: {message}")
        self.destination = destination
