from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.routes import health, recurring, schedules, timeslots
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.core.logging_config import setup_logging
from app.core.middleware import RequestLoggingMiddleware, RequestSizeLimitMiddleware

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging(settings.log_level)
    logger.info("%s starting", settings.project_name)
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


async def validation_error_handler(request: Request, exc: ValidationError):
    # Engine-side re-validation (e.g. a patch that breaks a session's duration).
    return JSONResponse(
        status_code=422,
        content={
            "message": "Invalid schedule data",
            "details": {"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        },
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(ValidationError, validation_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(timeslots.router, prefix=f"{settings.api_prefix}/timeslots", tags=["timeslots"])
app.include_router(schedules.router, prefix=f"{settings.api_prefix}/schedules", tags=["schedules"])
app.include_router(
    recurring.router,
    prefix=f"{settings.api_prefix}/recurring-schedules",
    tags=["recurring-schedules"],
)
