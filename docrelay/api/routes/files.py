"""
File retrieval endpoint.

GET  /f/{object_id}  - the document, whole or a byte range
HEAD /f/{object_id}  - same headers, no body, no delivery recorded

Unknown and expired ids both return 404 not_found.
"""

from fastapi import APIRouter, Request, Response

from ..dependencies import RangeServerDep

router = APIRouter()


@router.api_route(
    "/{object_id}",
    methods=["GET", "HEAD"],
    summary="Fetch a stored document",
    description="Supports single byte ranges (Range: bytes=start-end) with 206 responses.",
    responses={
        206: {"description": "Partial content"},
        404: {"description": "Unknown or expired id"},
        416: {"description": "Range outside the document"},
    },
)
async def read_file(
    object_id: str,
    request: Request,
    range_server: RangeServerDep,
) -> Response:
    result = range_server.serve(
        object_id,
        request.headers.get("range"),
        include_body=request.method != "HEAD",
    )
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
    )
