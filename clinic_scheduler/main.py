# clinic_scheduler/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlmodel import Session

from clinic_scheduler.config import get_settings
from clinic_scheduler.db import engine, init_db
from clinic_scheduler.errors import InvalidTransition, SchedulingError
from clinic_scheduler.routers import (
    appointments_routes,
    availability_routes,
    settings_routes,
    slots_routes,
    time_off_routes,
)
from clinic_scheduler.store import find_overlapping_appointments

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def check_existing_overlaps() -> None:
    with Session(engine) as session:
        pairs = find_overlapping_appointments(session)
    for first_id, second_id in pairs:
        logger.error("Active appointments overlap: %s <> %s", first_id, second_id)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    check_existing_overlaps()
    yield


app = FastAPI(title="Clinic Scheduler", lifespan=lifespan)

app.include_router(slots_routes.router)
app.include_router(appointments_routes.router)
app.include_router(availability_routes.router)
app.include_router(time_off_routes.router)
app.include_router(settings_routes.router)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(_: Request, exc: SchedulingError):
    body = {"detail": exc.detail}
    if isinstance(exc, InvalidTransition):
        body["from"] = exc.current
        body["to"] = exc.target
    return JSONResponse(status_code=exc.status_code, content=body)


# Malformed dates and intervals are request errors, not unprocessable entities
@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.get("/health")
def health_check():
    return {"status": "ok"}
