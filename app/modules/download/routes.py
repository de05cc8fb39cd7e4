from typing import Optional

from fastapi import APIRouter, Query, Response

from .schemas import DownloadRequest
from .service import content_disposition, fetch_remote_file


router = APIRouter()


@router.get("/download", response_class=Response, summary="Download a remote image as an attachment")
async def download_image(
    url: Optional[str] = Query(default=None, description="Absolute URL of the image to fetch"),
    filename: Optional[str] = Query(default=None, description="Filename to offer the browser"),
):
    # Body is buffered before the response is built, so headers and body go out together
    downloaded = await fetch_remote_file(DownloadRequest(url=url, filename=filename))

    headers = {
        "Content-Disposition": content_disposition(downloaded.filename),
        "Content-Length": str(downloaded.size_bytes),
        "Cache-Control": "no-cache",
    }
    return Response(content=downloaded.content, media_type=downloaded.content_type, headers=headers)
