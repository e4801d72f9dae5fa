"""
Public configuration endpoint.

The upload page reads this to show the size limit and how long links
last. Key names are the environment variable names, as the page expects.
"""

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import SettingsDep

router = APIRouter()


class PublicConfigResponse(BaseModel):
    """Settings that are safe to show to any client."""
    model_config = ConfigDict(populate_by_name=True)

    public_base_url: str = Field(alias="PUBLIC_BASE_URL")
    ttl_minutes: float = Field(alias="TTL_MINUTES")
    max_file_mb: int = Field(alias="MAX_FILE_MB")


@router.get(
    "",
    response_model=PublicConfigResponse,
    summary="Public relay configuration",
)
async def get_public_config(settings: SettingsDep) -> PublicConfigResponse:
    return PublicConfigResponse(
        public_base_url=settings.resolved_public_base_url,
        ttl_minutes=settings.ttl_minutes,
        max_file_mb=settings.max_file_mb,
    )
