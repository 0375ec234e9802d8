from fastapi import APIRouter

from . import bookings, events

api_router = APIRouter()
api_router.include_router(events.router)
api_router.include_router(bookings.router)
