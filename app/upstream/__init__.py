"""Single-shot clients for the hosting and transform services."""

from .client import UpstreamResponse, send_request
from .hosting import upload_image
from .transform import request_transform

__all__ = [
    "UpstreamResponse",
    "send_request",
    "upload_image",
    "request_transform",
]
