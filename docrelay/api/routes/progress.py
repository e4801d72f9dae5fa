"""
Delivery progress endpoint.

The upload page polls this while the viewer pulls the document, to show
how much has been delivered and roughly how long is left. A poll checks the
stored object first, so an expired id answers 404 even before any read or
sweep has removed it.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from ...core.relay.errors import ObjectNotFound
from ..dependencies import ObjectStoreDep, TransferTrackerDep

router = APIRouter()


class ProgressResponse(BaseModel):
    """Cumulative delivery for one document."""
    model_config = ConfigDict(populate_by_name=True)

    size: int = Field(description="Document size in bytes")
    bytes_sent: int = Field(alias="bytesSent", description="Bytes delivered so far, across all reads")
    eta_sec: Optional[int] = Field(alias="etaSec", description="Estimated seconds left, null if unknown")
    elapsed: float = Field(description="Seconds since the first delivery")


@router.get(
    "/{object_id}",
    response_model=ProgressResponse,
    summary="Delivery progress",
    responses={404: {"description": "No transfer record for this id"}},
)
async def get_progress(
    object_id: str,
    store: ObjectStoreDep,
    tracker: TransferTrackerDep,
) -> ProgressResponse:
    # get() evicts an expired object, which also drops its transfer record
    if store.get(object_id) is None:
        tracker.evict(object_id)
        raise ObjectNotFound(object_id)

    progress = tracker.progress(object_id)
    if progress is None:
        raise ObjectNotFound(object_id)

    return ProgressResponse(
        size=progress.size,
        bytes_sent=progress.bytes_sent,
        eta_sec=progress.eta_seconds,
        elapsed=progress.elapsed_seconds,
    )
