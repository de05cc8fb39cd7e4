import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.errors import ErrorKind, error_payload

logger = logging.getLogger("app.middleware.errors")


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn any exception that escaped the routes into an Uncategorized JSON error."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("Unhandled error processing %s %s", request.method, request.url.path)
            kind = ErrorKind.UNCATEGORIZED
            return JSONResponse(
                status_code=kind.status_code,
                content=error_payload(kind, str(exc) or None),
            )
