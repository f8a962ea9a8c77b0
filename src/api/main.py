"""
FILE: src/api/main.py
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import JSONResponse

import src.api.routers.negotiation_support_routes  # noqa: F401
from src.api.observability import setup_observability
from src.api.persistence_profile import validate_persistence_profile_guardrails
from src.api.routers.negotiation import router as schedule_negotiation_router
from src.api.routers.negotiation_config import validate_negotiation_calendar_timezone


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    validate_persistence_profile_guardrails()
    validate_negotiation_calendar_timezone()
    yield


app = FastAPI(
    title="Schedule Negotiation API",
    version="0.1.0",
    description=(
        "Installation-date negotiation between customers and installers for TV installation "
        "bookings.\n\n"
        "Proposals move `pending` -> `accepted` | `declined`; the booking-level schedule "
        "state is derived on read from the ordered proposal history."
    ),
    openapi_tags=[
        {
            "name": "Schedule Negotiation",
            "description": "Proposal submission, responses, deletion, and negotiation reads.",
        },
        {
            "name": "Health",
            "description": "Liveness and readiness probes.",
        },
    ],
    lifespan=_app_lifespan,
)

setup_observability(app)
logger = logging.getLogger(__name__)

app.include_router(schedule_negotiation_router)

health_router = APIRouter(tags=["Health"])


@health_router.get("/health", summary="Health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@health_router.get("/health/live", summary="Liveness")
def health_live() -> Dict[str, str]:
    return {"status": "live"}


@health_router.get("/health/ready", summary="Readiness")
def health_ready() -> Dict[str, str]:
    return {"status": "ready"}


app.include_router(health_router)
app.include_router(health_router, prefix="/api/v1")


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )
