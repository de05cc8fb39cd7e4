"""Middleware package for FastAPI application."""

from .error_handler import ErrorHandlerMiddleware
from .request_logging import RequestLoggingMiddleware

__all__ = ["ErrorHandlerMiddleware", "RequestLoggingMiddleware"]
