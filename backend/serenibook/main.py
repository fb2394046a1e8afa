# backend/serenibook/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from .database import init_db
from .redis_client import redis_client
from .routers import (
    availability,
    blocked_times,
    bookings,
    conflicts,
    group_bookings,
    group_classes,
    professionals,
    registrations,
)
from .services.scheduling.errors import SchedulingError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready")
    yield


app = FastAPI(title="SereniBook Scheduling API", lifespan=lifespan)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors()), "error": "validation_error"},
    )


app.include_router(professionals.router)
app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(blocked_times.router)
app.include_router(conflicts.router)
app.include_router(group_bookings.router)
app.include_router(group_classes.router)
app.include_router(registrations.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}
