import logging
from datetime import datetime, timezone

from pymongo.errors import DuplicateKeyError

from ..core.config import get_settings
from ..core.errors import ConflictError, NotFoundError
from ..models.booking import BookingOut
from .database import ConnectionCache, MongoService, get_connection_cache
from .events import normalize_slug

log = logging.getLogger("bookings")


class BookingService(MongoService):
    async def create_booking(self, raw_slug, email: str) -> BookingOut:
        """
        Book `email` onto the event at `raw_slug`.
        One booking per address per event (unique index on event_id+email).
        """
        slug = normalize_slug(raw_slug)
        event = await self._run(
            lambda db: db.events.find_one({"slug": slug}, {"_id": 1}),
            "fetching an event",
        )
        if event is None:
            raise NotFoundError("Event not found")

        doc = {
            "event_id": str(event["_id"]),
            "slug": slug,
            "email": email.lower(),
            "created_at": datetime.now(timezone.utc),
        }
        try:
            await self._run(lambda db: db.bookings.insert_one(doc), "creating a booking")
        except DuplicateKeyError as exc:
            raise ConflictError("This e-mail is already booked for the event") from exc

        log.info("Booked %s onto %s", doc["email"], slug)
        return BookingOut(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})


def get_booking_service() -> BookingService:
    return BookingService(get_connection_cache(), timeout=get_settings().db_timeout_seconds)
