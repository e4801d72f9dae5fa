"""
Upload endpoint.

POST /upload (multipart/form-data, field ``file``)

The document is held in memory only. The response carries two URLs:
- fileUrl: where the relay serves the bytes (GET /f/{id})
- viewerUrl: an Office Online embed URL that loads fileUrl

The viewer fetches fileUrl from Microsoft's servers, so fileUrl must be
publicly reachable. Behind a tunnel or reverse proxy the forwarded
protocol and Host header are used to build it; otherwise PUBLIC_BASE_URL.
"""

import logging
from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import APIRouter, File, Request, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from ...config.settings import Settings
from ...core.relay.errors import InternalError, PayloadTooLarge, RelayError, ValidationError
from ...core.relay.filenames import guess_mime_type, sanitize_filename
from ..dependencies import ObjectStoreDep, SettingsDep, TransferTrackerDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class UploadResponse(BaseModel):
    """Response after storing a document."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Opaque object identifier")
    file_url: str = Field(alias="fileUrl", description="Direct URL of the stored bytes")
    viewer_url: str = Field(alias="viewerUrl", description="Office Online viewer URL for fileUrl")
    filename: str = Field(description="Sanitized display name")
    expires_at: int = Field(alias="expiresAt", description="Expiry as epoch milliseconds")


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def public_base_url(request: Request, settings: Settings) -> str:
    """
    Base URL the outside world reaches this relay on.

    Both X-Forwarded-Proto and Host must be present to trust the request;
    proxies that append to X-Forwarded-Proto produce a list, first wins.
    """
    proto = request.headers.get("x-forwarded-proto", "").split(",")[0].strip()
    host = request.headers.get("host", "").strip()
    if proto and host:
        return f"{proto}://{host}"
    return settings.resolved_public_base_url


def viewer_url(file_url: str, settings: Settings) -> str:
    return f"{settings.viewer_base_url}?src={quote(file_url, safe='')}"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a document",
    description="Store a document in memory and get a short-lived URL for it",
    responses={
        400: {"description": "No file part in the request"},
        413: {"description": "File larger than MAX_FILE_MB"},
        500: {"description": "Unexpected failure"},
    },
)
async def upload_file(
    request: Request,
    store: ObjectStoreDep,
    tracker: TransferTrackerDep,
    settings: SettingsDep,
    file: Annotated[Optional[UploadFile], File(description="Office document")] = None,
) -> UploadResponse:
    """
    Store an uploaded document.

    The declared size is checked before reading when the client sent one;
    the store checks the real size again before keeping anything.
    """
    if file is None:
        raise ValidationError("No file part in upload")

    if file.size is not None and file.size > settings.max_bytes:
        raise PayloadTooLarge(file.size, settings.max_bytes)

    try:
        payload = await file.read()

        display_name = sanitize_filename(
            file.filename,
            max_length=settings.max_filename_length,
            default=settings.default_filename,
        )
        mime_type = guess_mime_type(file.filename or display_name, file.content_type)

        stored = store.put_object(payload, mime_type, display_name)
        tracker.init(stored.id, stored.size)
    except RelayError:
        raise
    except Exception as e:
        logger.error(
            "Upload failed",
            extra={"upload_filename": file.filename, "error": str(e)},
            exc_info=e,
        )
        raise InternalError("Upload failed") from e
    finally:
        await file.close()

    file_url = f"{public_base_url(request, settings)}/f/{stored.id}"

    logger.info(
        "Document uploaded",
        extra={
            "object_id": stored.id,
            "display_name": stored.display_name,
            "size_bytes": stored.size,
            "mime_type": stored.mime_type,
        }
    )

    return UploadResponse(
        id=stored.id,
        file_url=file_url,
        viewer_url=viewer_url(file_url, settings),
        filename=stored.display_name,
        expires_at=stored.expires_at_ms,
    )
