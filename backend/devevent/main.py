import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .core.config import get_settings
from .routers import api_router          # all sub-routers live here
from .services.database import get_connection_cache

# read once at import – a missing MONGODB_URI / CLOUDINARY_URL stops startup here
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# connection is opened lazily by the first request; only closing is ours
@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await get_connection_cache().close()


app = FastAPI(title="DevEvent API", lifespan=lifespan)
app.include_router(api_router)


@app.get("/health", tags=["health"])
async def health() -> dict:
    return {"status": "ok"}
