# backend/devevent/routers/events.py
#
# Public event routes:
#   • GET  /events                 – every event, newest first
#   • POST /events                 – multipart form + image → new event
#   • GET  /events/{slug}          – one event
#   • GET  /events/{slug}/similar  – events sharing a tag
#
# Handlers only validate, call EventService and shape the JSON. Error
# detail stays in the log: clients get the DevEventError message or a
# generic one, never the exception text of a driver.

import logging
from collections import Counter

from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError as FormError
from starlette.datastructures import UploadFile

from ..core.errors import DevEventError, UpstreamFailure
from ..models.event import EventForm
from ..services.events import EventService, get_event_service

log = logging.getLogger("events")
router = APIRouter(prefix="/events", tags=["events"])


def _json(status_code: int, **body) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _lookup_error(exc: Exception, action: str) -> JSONResponse:
    """{success: false, error} for the slug-addressed routes."""
    if isinstance(exc, DevEventError) and not isinstance(exc, UpstreamFailure):
        return _json(exc.status_code, success=False, error=exc.message)
    log.error("Error %s: %s", action, exc, exc_info=exc)
    return _json(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        success=False,
        error=f"An error occurred while {action}",
    )


# ───────────────────────────── list ──────────────────────────────────
@router.get("", summary="List events, most recent first")
async def list_events(service: EventService = Depends(get_event_service)):
    try:
        events = await service.list_events()
    except Exception as exc:
        log.error("Error fetching events: %s", exc, exc_info=True)
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Event Fetching Failed",
            error="Events are temporarily unavailable",
        )
    return _json(status.HTTP_200_OK, message="Events Fetched Successfully", events=events)


# ──────────────────────────── create ─────────────────────────────────
@router.post("", summary="Create an event (multipart form with image)")
async def create_event(
    request: Request, service: EventService = Depends(get_event_service)
):
    """
    Expects `multipart/form-data` with every EventForm field plus one
    `image` file. `tags` and `agenda` are JSON-encoded string arrays.

    Everything is validated here, before the image is uploaded.
    """
    try:
        form = await request.form()
    except Exception:
        return _json(status.HTTP_400_BAD_REQUEST, message="Invalid form data format")

    images = form.getlist("image")
    if not images or not isinstance(images[0], UploadFile):
        return _json(status.HTTP_400_BAD_REQUEST, message="Image file is required")
    if len(images) != 1:
        return _json(status.HTTP_400_BAD_REQUEST, message="Exactly one image file is allowed")
    image = images[0]
    if not (image.content_type or "").startswith("image/"):
        return _json(status.HTTP_400_BAD_REQUEST, message="Uploaded file must be an image")

    items = [(k, v) for k, v in form.multi_items() if k != "image"]
    fields = dict(items)
    try:
        if any(isinstance(v, UploadFile) for v in fields.values()):
            raise ValueError("only one file, `image`, is accepted")
        repeated = sorted(k for k, n in Counter(k for k, _ in items).items() if n > 1)
        if repeated:
            raise ValueError(f"fields given more than once: {', '.join(repeated)}")
        payload = EventForm.model_validate(fields)
    except (FormError, ValueError) as exc:
        errors = (
            exc.errors(include_url=False, include_input=False, include_context=False)
            if isinstance(exc, FormError)
            else [{"loc": [], "msg": str(exc)}]
        )
        return _json(
            status.HTTP_400_BAD_REQUEST,
            message="Invalid form data",
            errors=[
                {"field": ".".join(map(str, e["loc"])), "message": e["msg"]}
                for e in errors
            ],
        )

    try:
        data = await image.read()
        event = await service.create_event(
            payload, data, image.filename or "image", image.content_type
        )
    except DevEventError as exc:
        if not isinstance(exc, UpstreamFailure):
            return _json(exc.status_code, message=exc.message)
        log.error("Error creating event: %s", exc, exc_info=True)
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Event Creation Failed",
            error=exc.message,
        )
    except Exception as exc:
        log.error("Error creating event: %s", exc, exc_info=True)
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Event Creation Failed",
            error="Unexpected server error",
        )
    finally:
        await image.close()

    return _json(status.HTTP_201_CREATED, message="Event Created Successfully", event=event)


# ──────────────────────────── by slug ────────────────────────────────
@router.get("/{slug}", summary="Fetch one event by slug")
async def get_event(slug: str, service: EventService = Depends(get_event_service)):
    try:
        event = await service.get_event_by_slug(slug)
    except Exception as exc:
        return _lookup_error(exc, "fetching the event")
    return _json(status.HTTP_200_OK, success=True, event=event)


@router.get("/{slug}/similar", summary="Events sharing a tag with this one")
async def similar_events(slug: str, service: EventService = Depends(get_event_service)):
    try:
        events = await service.get_similar_events(slug)
    except Exception as exc:
        return _lookup_error(exc, "fetching similar events")
    return _json(status.HTTP_200_OK, success=True, events=events)
