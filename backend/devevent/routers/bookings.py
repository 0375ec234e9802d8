import logging
from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError as FormError
from ..core.errors import DevEventError, UpstreamFailure
from ..models.booking import BookingCreate
from ..services.bookings import BookingService, get_booking_service
log = logging.getLogger("bookings")
router = APIRouter(prefix="/events", tags=["bookings"])
def _fail(code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=code, content={"success": False, "error": error})
@router.post("/{slug}/bookings", summary="Book a seat with an e-mail address")
async def book(slug: str, request: Request, service: BookingService = Depends(get_booking_service)):
    # body read by hand: non-JSON or non-object bodies get our 400, not FastAPI's 422
    try: payload = BookingCreate.model_validate(await request.json())
    except (ValueError, FormError): return _fail(status.HTTP_400_BAD_REQUEST, "A valid e-mail address is required")
    try:
        booking = await service.create_booking(slug, payload.email)
    except DevEventError as exc:
        if not isinstance(exc, UpstreamFailure): return _fail(exc.status_code, exc.message)
        log.error("booking error %s", exc, exc_info=True)
        return _fail(500, "An error occurred while booking")
    except Exception as exc:
        log.error("booking error %s", exc, exc_info=True)
        return _fail(500, "An error occurred while booking")
    return JSONResponse(status_code=status.HTTP_201_CREATED,
                        content={"success": True, "booking": jsonable_encoder(booking)})
