"""Client-facing error taxonomy and the handlers that render it as JSON."""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Each kind maps to exactly one HTTP status and a default message."""

    MISSING_INPUT = ("MissingInput", 400, "No image data provided")
    MISSING_URL = ("MissingUrl", 400, "Image URL is required")
    INVALID_INPUT = ("InvalidInput", 400, "Image data is not valid base64")
    INVALID_URL = ("InvalidUrl", 400, "Image URL must be an absolute http(s) URL")
    BAD_IMAGE_FORMAT = ("BadImageFormat", 400, "Invalid image format or unsupported image type")
    SOURCE_EXPIRED = ("SourceExpired", 404, "Image not found. The uploaded URL may have expired")
    PAYLOAD_TOO_LARGE = ("PayloadTooLarge", 413, "Image is larger than the upload limit")
    RATE_LIMITED = ("RateLimited", 429, "Too many requests. Please wait a moment and try again")
    UPSTREAM_SERVER_ERROR = ("UpstreamServerError", 500, "API server error. Please try again in a few minutes")
    UPSTREAM_ERROR = ("UpstreamError", 500, "API error")
    UPSTREAM_BAD_RESPONSE = ("UpstreamBadResponse", 500, "API returned invalid response format")
    UPSTREAM_PROCESSING_FAILED = ("UpstreamProcessingFailed", 500, "API processing failed")
    UPSTREAM_INVALID_RESULT = ("UpstreamInvalidResult", 500, "Invalid result from API")
    UPSTREAM_HOSTING_FAILED = ("UpstreamHostingFailed", 502, "Failed to upload image to hosting")
    UPSTREAM_HOSTING_INVALID = ("UpstreamHostingInvalid", 502, "Invalid URL from image hosting")
    FETCH_FAILED = ("FetchFailed", 502, "Failed to fetch image")
    NETWORK_UNREACHABLE = ("NetworkUnreachable", 503, "Upstream service is unreachable")
    TRANSFORM_NOT_CONFIGURED = ("TransformNotConfigured", 503, "Transform service is not configured")
    TIMEOUT = ("Timeout", 504, "Processing timed out. Please try again")
    UNCATEGORIZED = ("Uncategorized", 500, "Failed to process image")

    def __init__(self, label: str, status_code: int, default_message: str):
        self.label = label
        self.status_code = status_code
        self.default_message = default_message


class ServiceError(Exception):
    """Raised anywhere in the pipeline; rendered once at the HTTP boundary."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None, *, upstream_status: Optional[int] = None):
        self.kind = kind
        self.message = message or kind.default_message
        self.upstream_status = upstream_status
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_payload(self) -> Dict[str, Any]:
        return error_payload(self.kind, self.message)


def error_payload(kind: ErrorKind, message: Optional[str] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": kind.label,
        "message": message or kind.default_message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.warning(
        "❌ %s %s failed: kind=%s status=%s upstream_status=%s message=%s",
        request.method,
        request.url.path,
        exc.kind.label,
        exc.status_code,
        exc.upstream_status,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # loc and type only; the rejected input may carry image data
    problems = [(error.get("loc"), error.get("type")) for error in exc.errors()]
    logger.warning("Rejected malformed request to %s: %s", request.url.path, problems)
    kind = ErrorKind.INVALID_INPUT
    return JSONResponse(status_code=kind.status_code, content=error_payload(kind, "Invalid request body"))


def register_error_handlers(application: FastAPI) -> None:
    application.add_exception_handler(ServiceError, service_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
