import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


LOG_METHODS = {"POST", "PUT", "DELETE"}
# Fields carrying image payloads; logged as a length marker only
REDACTED_FIELDS = {"image"}
MAX_LOGGED_BYTES = 4096
logger = logging.getLogger("app.middleware.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log request/response summaries for mutating methods without leaking image payloads."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        method = request.method.upper()
        if method not in LOG_METHODS:
            return await call_next(request)

        start_time = time.perf_counter()
        logger.info(
            "Incoming %s %s query=%s body=%s",
            method,
            request.url.path,
            dict(request.query_params),
            await self._describe_request_body(request),
        )

        response = await call_next(request)

        response_bytes = await self._drain(response)
        logger.info(
            "Completed %s %s status=%s duration_ms=%.2f body=%s",
            method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start_time) * 1000,
            describe_body(response_bytes, limit=MAX_LOGGED_BYTES),
        )

        headers = dict(response.headers)
        headers.pop("content-length", None)
        replayed = Response(
            content=response_bytes,
            status_code=response.status_code,
            headers=headers,
            media_type=response.media_type,
        )
        replayed.background = response.background
        return replayed

    async def _describe_request_body(self, request: Request) -> Any:
        if "multipart" in request.headers.get("content-type", ""):
            return "<multipart omitted>"

        try:
            body_bytes = await request.body()
        except Exception as exc:
            logger.debug("Failed to read request body: %s", exc)
            return None

        async def receive() -> Dict[str, Any]:
            return {"type": "http.request", "body": body_bytes, "more_body": False}

        request._receive = receive  # type: ignore[attr-defined]
        return describe_body(body_bytes)

    async def _drain(self, response: Response) -> bytes:
        chunks = []
        try:
            async for chunk in response.body_iterator:
                chunks.append(chunk)
        except Exception as exc:
            logger.debug("Failed to read response body: %s", exc)
        return b"".join(chunks)


def describe_body(body: bytes, limit: Optional[int] = None) -> Any:
    """Parsed and redacted JSON, or a length marker when the body is not JSON."""
    if not body:
        return None
    if limit is not None and len(body) > limit:
        return f"<{len(body)} bytes omitted>"
    try:
        return redact(json.loads(body))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return f"<{len(body)} bytes, unparsed>"


def _mask(value: Any) -> str:
    if isinstance(value, str):
        return f"<{len(value)} chars omitted>"
    return f"<{type(value).__name__} omitted>"


def redact(payload: Any) -> Any:
    """Replace image payloads at any depth with their length."""
    if isinstance(payload, dict):
        return {key: _mask(value) if key in REDACTED_FIELDS else redact(value) for key, value in payload.items()}
    if isinstance(payload, list):
        return [redact(item) for item in payload]
    if isinstance(payload, str) and len(payload) >= MAX_LOGGED_BYTES:
        return f"<{len(payload)} chars omitted>"
    return payload
