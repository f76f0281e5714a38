"""Scheduling routes: destinations, schedule, cancel, status."""

import logging
from typing import Any

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...core.errors import ChannelUnavailable, NotFoundError
from ...core.state import AppState
from ...tasks.task_models import CancelResult

router = APIRouter()
logger = logging.getLogger(__name__)


class CancelRequest(BaseModel):
    id: str | None = None


def _state(request: Request) -> AppState:
    return request.app.state.media


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Not found"})


@router.get("/destinations", response_model=None)
@router.get("/groups", response_model=None, include_in_schema=False)
async def list_destinations(request: Request) -> list[dict[str, str]] | JSONResponse:
    """List rooms media can be sent to. 503 until the chat channel is connected."""
    service = _state(request).service
    try:
        destinations = await service.list_destinations()
    except ChannelUnavailable:
        raise
    except Exception as e:
        logger.exception("Listing destinations failed")
        return JSONResponse(status_code=500, content={"error": str(e) or type(e).__name__})
    return [{"name": d.name, "id": d.id} for d in destinations]


@router.post("/schedule")
async def schedule_media(
    request: Request,
    image: UploadFile | None = File(None),
    group_id: str | None = Form(None, alias="groupId"),
    schedule_time: str | None = Form(None, alias="scheduleTime"),
    ui_id: str | None = Form(None, alias="uiId"),
) -> dict[str, str]:
    """Store the uploaded file and schedule it for delivery.

    The upload is written to disk before validation; every rejection deletes it again.
    """
    state = _state(request)

    payload_ref: str | None = None
    if image is not None and image.filename:
        payload_ref = await run_in_threadpool(state.blob_store.save, image.filename, image.file)

    task = state.service.request_schedule(
        destination=group_id,
        payload_ref=payload_ref,
        schedule_time=schedule_time,
        task_id=ui_id,
    )
    return {"status": "Scheduled", "id": task.id}


@router.post("/cancel", response_model=None)
async def cancel_task(request: Request, body: CancelRequest) -> dict[str, str] | JSONResponse:
    result = _state(request).service.request_cancel(body.id)
    if result is CancelResult.NOT_FOUND:
        return _not_found()
    return {"status": "Cancelled"}


@router.get("/scheduled")
async def list_scheduled(request: Request) -> list[dict[str, Any]]:
    tasks = _state(request).service.list_scheduled()
    return [{"id": t.id, "destination": t.destination, "triggerAt": t.trigger_at.isoformat()} for t in tasks]


@router.get("/scheduled/{task_id}")
async def task_status(request: Request, task_id: str) -> dict[str, str]:
    task = _state(request).service.task_status(task_id)
    if task is None:
        raise NotFoundError(task_id)
    return task.to_dict()
