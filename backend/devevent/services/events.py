"""
Event-centric helpers:
• normalize_slug / slugify – the one definition of what a slug looks like
• EventService              – lookup, list, create, similar events
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from ..core.config import get_settings
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..models.event import EventForm, EventOut
from .assets import CloudinaryAssetStore, get_asset_store
from .database import ConnectionCache, MongoService, get_connection_cache

log = logging.getLogger("events")

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def normalize_slug(raw_slug) -> str:
    """Trim + lowercase; anything that ends up empty is a client error."""
    if not isinstance(raw_slug, str) or not raw_slug.strip():
        raise ValidationError("Invalid or missing slug parameter")
    return raw_slug.strip().lower()


def slugify(title: str) -> str:
    return _NON_SLUG.sub("-", title.strip().lower()).strip("-")


class EventService(MongoService):
    def __init__(
        self,
        connections: ConnectionCache,
        assets: CloudinaryAssetStore,
        *,
        timeout: float,
    ) -> None:
        super().__init__(connections, timeout=timeout)
        self.assets = assets

    # ────────────────────────── reads ──────────────────────────────────
    async def _find_doc(self, raw_slug) -> dict:
        slug = normalize_slug(raw_slug)
        doc = await self._run(
            lambda db: db.events.find_one({"slug": slug}), "fetching an event"
        )
        if doc is None:
            raise NotFoundError("Event not found")
        return doc

    async def get_event_by_slug(self, raw_slug) -> EventOut:
        return EventOut.from_doc(await self._find_doc(raw_slug))

    async def list_events(self) -> list[EventOut]:
        """All events, newest first."""
        docs = await self._run(
            lambda db: db.events.find().sort("created_at", DESCENDING).to_list(None),
            "listing events",
        )
        return [EventOut.from_doc(d) for d in docs]

    async def get_similar_events(self, raw_slug) -> list[EventOut]:
        """Events sharing at least one tag with `raw_slug`, itself excluded."""
        doc = await self._find_doc(raw_slug)
        query = {"_id": {"$ne": doc["_id"]}, "tags": {"$in": doc.get("tags", [])}}
        docs = await self._run(
            lambda db: db.events.find(query).sort("created_at", DESCENDING).to_list(None),
            "fetching similar events",
        )
        return [EventOut.from_doc(d) for d in docs]

    # ────────────────────────── writes ─────────────────────────────────
    async def create_event(
        self, form: EventForm, image: bytes, filename: str, content_type: str
    ) -> EventOut:
        """
        Upload the banner, then insert the event.

        The slug is checked up front so a duplicate title never costs an
        upload; the unique index still catches a concurrent insert.
        """
        slug = slugify(form.title)
        if not slug:
            raise ValidationError("Title must contain letters or digits")

        taken = await self._run(
            lambda db: db.events.find_one({"slug": slug}, {"_id": 1}),
            "checking the slug",
        )
        if taken:
            raise ConflictError("An event with this title already exists")

        image_url = await self.assets.upload_image(image, filename, content_type)

        doc = {
            **form.model_dump(mode="json"),
            "slug": slug,
            "image": image_url,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            await self._run(lambda db: db.events.insert_one(doc), "creating the event")
        except DuplicateKeyError as exc:
            raise ConflictError("An event with this title already exists") from exc

        log.info("Created event %s (%s)", slug, doc["_id"])
        return EventOut.from_doc(doc)


def get_event_service() -> EventService:
    return EventService(
        get_connection_cache(),
        get_asset_store(),
        timeout=get_settings().db_timeout_seconds,
    )
