import logging

from app.core.config import settings
from app.core.errors import ErrorKind, ServiceError

from .client import UpstreamResponse, send_request

logger = logging.getLogger(__name__)


async def request_transform(source_url: str) -> UpstreamResponse:
    """Ask the transform API to process the image hosted at ``source_url``."""
    if not settings.TRANSFORM_API_URL:
        raise ServiceError(ErrorKind.TRANSFORM_NOT_CONFIGURED)

    logger.info("Requesting transform for %s", source_url)
    return await send_request(
        "GET",
        settings.TRANSFORM_API_URL,
        params={settings.TRANSFORM_URL_PARAM: source_url},
        headers={"Accept": "application/json"},
    )
