import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from booking.crud import ensure_booking_indexes
from booking.routes import booking
from common.database import ConnectionManager
from common.errors import ConfigurationError, DatabaseConnectionError
from event.crud import ensure_event_indexes
from event.routes import event

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def ensure_indexes(db):
    await ensure_event_indexes(db)
    await ensure_booking_indexes(db)
    logger.info("MongoDB indexes ensured")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Connects lazily on the first request.
    app.state.connection_manager = ConnectionManager.from_env(on_connect=ensure_indexes)
    yield
    await app.state.connection_manager.close()


app = FastAPI(title="Dev Events", lifespan=lifespan)
app.include_router(event, prefix="/events", tags=["events"])
app.include_router(booking, tags=["bookings"])


@app.exception_handler(ConfigurationError)
@app.exception_handler(DatabaseConnectionError)
async def database_unavailable(request: Request, exc: Exception):
    logger.error("MongoDB unavailable: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)}
    )


if __name__ == "__main__":
    uvicorn.run("main:app", host="localhost", port=8000, reload=True)
