import logging

import aiohttp

from app.core.config import settings

from .client import UpstreamResponse, send_request

logger = logging.getLogger(__name__)


def build_upload_form(data: bytes, filename: str, mimetype: str) -> aiohttp.FormData:
    form = aiohttp.FormData()
    form.add_field("reqtype", "fileupload")
    form.add_field("fileToUpload", data, filename=filename, content_type=mimetype)
    return form


async def upload_image(data: bytes, filename: str, mimetype: str) -> UpstreamResponse:
    """Upload raw image bytes to the hosting service; its body is the public URL."""
    logger.info("Uploading %s (%d bytes, %s) to %s", filename, len(data), mimetype, settings.HOSTING_UPLOAD_URL)
    return await send_request(
        "POST",
        settings.HOSTING_UPLOAD_URL,
        data=build_upload_form(data, filename, mimetype),
    )
