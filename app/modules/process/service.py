import asyncio
import base64
import binascii
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from app.core.config import settings
from app.core.errors import ErrorKind, ServiceError
from app.upstream import UpstreamResponse, request_transform, upload_image

from .schemas import ProcessRequest, ProcessResult, ProcessTiming

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "image.png"
DEFAULT_MIMETYPE = "image/png"


async def process_image(request: ProcessRequest) -> ProcessResult:
    """
    Upload the image to the hosting service, then run it through the transform API.

    The whole pipeline shares one deadline. When it expires the in-flight
    upstream call is cancelled along with the task, so no work outlives the
    response the caller receives.

    Raises:
        ServiceError: for every failure; the kind decides the HTTP status
    """
    try:
        return await asyncio.wait_for(_run_pipeline(request), timeout=settings.PROCESS_TIMEOUT_SECONDS)
    except asyncio.TimeoutError as exc:
        logger.error("Processing exceeded %.0fs deadline, upstream work cancelled", settings.PROCESS_TIMEOUT_SECONDS)
        raise ServiceError(ErrorKind.TIMEOUT) from exc


async def _run_pipeline(request: ProcessRequest) -> ProcessResult:
    start_time = time.perf_counter()

    if not request.image:
        raise ServiceError(ErrorKind.MISSING_INPUT)

    image_bytes = decode_image(request.image)
    if not settings.TRANSFORM_API_URL:
        raise ServiceError(ErrorKind.TRANSFORM_NOT_CONFIGURED)
    filename = request.filename or DEFAULT_FILENAME
    mimetype = request.mimetype or DEFAULT_MIMETYPE

    logger.info("Step 1: Uploading %s to hosting...", filename)
    upload_started = time.perf_counter()
    upload_response = await upload_image(image_bytes, filename, mimetype)
    upload_ms = _elapsed_ms(upload_started)
    hosted_url = _hosted_url(upload_response)
    logger.info("✓ Upload complete in %dms: %s", upload_ms, hosted_url)

    logger.info("Step 2: Processing with transform API...")
    processing_started = time.perf_counter()
    transform_response = await request_transform(hosted_url)
    processing_ms = _elapsed_ms(processing_started)
    logger.info("✓ Transform API responded in %dms with status %s", processing_ms, transform_response.status)

    data = _transform_payload(transform_response)
    result_url = _result_url(data)

    total_ms = _elapsed_ms(start_time)
    logger.info("✓ Complete! Total time: %dms", total_ms)

    upstream_timestamp = data.get("timestamp")
    upstream_response_time = data.get("responseTime")
    return ProcessResult(
        result_url=result_url,
        uploaded_url=hosted_url,
        timestamp=upstream_timestamp if isinstance(upstream_timestamp, str) and upstream_timestamp
        else datetime.now(timezone.utc).isoformat(),
        timing=ProcessTiming(
            upload_ms=upload_ms,
            processing_ms=processing_ms,
            total_ms=total_ms,
            upstream_response_time=str(upstream_response_time) if upstream_response_time is not None else None,
        ),
    )


def decode_image(payload: str) -> bytes:
    """Decode the base64 wire payload, tolerating a data-URI prefix and line breaks."""
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    compact = "".join(payload.split())
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ServiceError(ErrorKind.INVALID_INPUT) from exc

    if not data:
        raise ServiceError(ErrorKind.MISSING_INPUT)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        raise ServiceError(ErrorKind.PAYLOAD_TOO_LARGE, f"File size must be less than {limit_mb:g}MB")
    return data


def classify_transform_status(status: int) -> ErrorKind:
    if status == 400:
        return ErrorKind.BAD_IMAGE_FORMAT
    if status == 404:
        return ErrorKind.SOURCE_EXPIRED
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status >= 500:
        return ErrorKind.UPSTREAM_SERVER_ERROR
    return ErrorKind.UPSTREAM_ERROR


def _hosted_url(response: UpstreamResponse) -> str:
    if not response.ok:
        logger.error("Hosting upload error (status %s): %s", response.status, response.text[:200])
        raise ServiceError(ErrorKind.UPSTREAM_HOSTING_FAILED, upstream_status=response.status)

    hosted_url = response.text.strip()
    if not hosted_url or not hosted_url.startswith("https://"):
        logger.error("Hosting returned an unusable URL: %r", hosted_url[:200])
        raise ServiceError(ErrorKind.UPSTREAM_HOSTING_INVALID)
    return hosted_url


def _transform_payload(response: UpstreamResponse) -> Dict[str, Any]:
    if not response.ok:
        logger.error("Transform API error response (status %s): %s", response.status, response.text[:200])
        kind = classify_transform_status(response.status)
        message = f"API error (status {response.status})" if kind is ErrorKind.UPSTREAM_ERROR else None
        raise ServiceError(kind, message, upstream_status=response.status)

    if "application/json" not in response.content_type.lower():
        logger.error("Non-JSON response (%s): %s", response.content_type or "no content-type", response.text[:200])
        raise ServiceError(ErrorKind.UPSTREAM_BAD_RESPONSE)

    try:
        data = response.json()
    except ValueError as exc:
        logger.error("Unparseable JSON from transform API: %s", response.text[:200])
        raise ServiceError(ErrorKind.UPSTREAM_BAD_RESPONSE) from exc
    if not isinstance(data, dict):
        raise ServiceError(ErrorKind.UPSTREAM_BAD_RESPONSE)
    return data


def _result_url(data: Dict[str, Any]) -> str:
    if data.get("success") is not True:
        upstream_message = data.get("message")
        raise ServiceError(
            ErrorKind.UPSTREAM_PROCESSING_FAILED,
            upstream_message if isinstance(upstream_message, str) else None,
        )

    result = data.get("result")
    if not isinstance(result, str) or not result.startswith("http"):
        raise ServiceError(ErrorKind.UPSTREAM_INVALID_RESULT)
    return result


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
