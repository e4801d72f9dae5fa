"""
Health check endpoint.

A liveness probe for load balancers and the upload page, which pings it
before offering the upload form. It does no real work: if the process
answers, the relay is alive. There is nothing external to check for
readiness, since all state is in memory.
"""

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import ObjectStoreDep

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    ``ok`` is the flag existing clients read; the rest is for humans.
    """
    ok: bool
    status: str
    version: str
    details: dict[str, Any] = {}


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running.",
)
async def health_check(store: ObjectStoreDep) -> HealthResponse:
    return HealthResponse(
        ok=True,
        status="ok",
        version=__version__,
        details={"objects": len(store)},
    )
