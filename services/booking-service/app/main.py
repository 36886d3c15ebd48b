import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL
from .errors import BookingError
from .middleware import RequestLoggingMiddleware
from .rabbitmq import publisher
from .routes import router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [booking-service] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Booking Service")

app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.message, "reason": exc.reason},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "detail": jsonable_encoder(exc.errors()),
            "reason": "invalid_request",
        },
    )


@app.get("/health")
async def health():
    return {"status": "ok", "service": "booking-service", "events_enabled": publisher.enabled}


@app.on_event("startup")
async def startup():
    # Never crash the service if RabbitMQ is temporarily unavailable
    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("RabbitMQ connect failed at startup; continuing without events: %s", e)


@app.on_event("shutdown")
async def shutdown():
    try:
        await publisher.close()
    except Exception as e:
        logger.warning("RabbitMQ close failed: %s", e)
