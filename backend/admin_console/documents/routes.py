import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from admin_console.dependencies import get_document_proxy
from admin_console.errors import AdminConsoleError
from admin_console.services.documents import DocumentProxy
from admin_console.utils.http_errors import http_error
from admin_console.utils.rate_limit import DOWNLOAD_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter(prefix="/api/admin", tags=["documents"])


@router.get("/download-document")
@limiter.limit(DOWNLOAD_RATE_LIMIT)
async def download_document(
    request: Request,
    url: str = Query(..., min_length=1),
    proxy: DocumentProxy = Depends(get_document_proxy),
):
    """Download a dispute or ticket attachment through the console."""
    try:
        document = await proxy.fetch(url)
    except AdminConsoleError as exc:
        raise http_error(exc, "Download failed")

    safe_name = document.filename.replace('"', "").replace("\r", "").replace("\n", "")
    # Header values are latin-1; non-ASCII characters become underscores
    safe_name = safe_name.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return Response(
        content=document.content,
        media_type=document.content_type,
        headers={"Content-Disposition": f'attachment; filename="{safe_name}"'},
    )
