import logging
import re
import time
from typing import Optional
from urllib.parse import quote

from app.core.errors import ErrorKind, ServiceError
from app.upstream import send_request

from .schemas import DownloadedFile, DownloadRequest

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/png"

# Characters that would break out of a quoted Content-Disposition filename or a path
_UNSAFE_FILENAME_CHARS = re.compile(r'["\\/\x00-\x1f\x7f]')


def extension_for(content_type: str) -> str:
    content_type = content_type.lower()
    if "jpeg" in content_type or "jpg" in content_type:
        return "jpg"
    if "webp" in content_type:
        return "webp"
    if "gif" in content_type:
        return "gif"
    return "png"


def sanitize_filename(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", filename).strip()
    return cleaned or None


def content_disposition(filename: str) -> str:
    """Attachment header; non-ASCII names get an RFC 5987 ``filename*`` alongside an ASCII fallback."""
    ascii_name = filename.encode("ascii", errors="ignore").decode("ascii").strip() or "download"
    header = f'attachment; filename="{ascii_name}"'
    if ascii_name != filename:
        header += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return header


def resolve_filename(custom_filename: Optional[str], content_type: str) -> str:
    return sanitize_filename(custom_filename) or f"result_{int(time.time() * 1000)}.{extension_for(content_type)}"


async def fetch_remote_file(request: DownloadRequest) -> DownloadedFile:
    """
    Fetch a remote file so it can be re-served under a new filename.
    Returns: DownloadedFile with the body, passthrough content type and chosen filename
    """
    if not request.url:
        raise ServiceError(ErrorKind.MISSING_URL)
    if not request.url.lower().startswith(("http://", "https://")):
        raise ServiceError(ErrorKind.INVALID_URL)

    logger.info("Downloading image: %s", request.url)
    response = await send_request("GET", request.url)

    if not response.ok:
        logger.error("Remote fetch failed for %s: HTTP %s", request.url, response.status)
        raise ServiceError(
            ErrorKind.FETCH_FAILED,
            f"Failed to fetch image: {response.status}",
            upstream_status=response.status,
        )

    content_type = response.content_type or DEFAULT_CONTENT_TYPE
    downloaded = DownloadedFile(
        content=response.body,
        content_type=content_type,
        filename=resolve_filename(request.filename, content_type),
    )
    logger.info("Image downloaded, size: %d bytes, type: %s", downloaded.size_bytes, content_type)
    return downloaded
