import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL
from .consumer import start_consumer
from .errors import BookingError
from .middleware import RequestLoggingMiddleware
from .rabbitmq import publisher
from .routes import router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "System", "description": "Operational endpoints."},
    {"name": "Listings", "description": "Vacation posts published by doctors."},
    {"name": "Bookings", "description": "Booking requests and their status lifecycle."},
    {"name": "Payments", "description": "Payment status of confirmed bookings."},
    {"name": "Messages", "description": "Booking-scoped conversations."},
    {"name": "Notifications", "description": "In-app notifications."},
    {"name": "Reviews", "description": "Ratings left after a completed vacation."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    consumer_conn = None
    # Never crash the service if RabbitMQ is temporarily unavailable
    if publisher.enabled:
        try:
            await publisher.start()
            consumer_conn = await start_consumer()
        except Exception as e:
            logger.warning("RabbitMQ unavailable at startup; continuing without events: %s", e)

    yield

    try:
        await publisher.stop()
    except Exception as e:
        logger.warning("Publisher close failed: %s", e)
    try:
        if consumer_conn and not consumer_conn.is_closed:
            await consumer_conn.close()
    except Exception as e:
        logger.warning("Consumer close failed: %s", e)


app = FastAPI(title="Vacation Booking Service", openapi_tags=OPENAPI_TAGS, lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_detail},
    )


@app.get("/health", tags=["System"])
async def health():
    return {
        "status": "ok",
        "service": "vacation-service",
        "events_enabled": publisher.enabled,
    }
