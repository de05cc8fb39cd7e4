import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from app.core.config import settings
from app.core.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw outcome of a single upstream call."""

    status: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)


def default_timeout() -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(total=settings.UPSTREAM_TIMEOUT_SECONDS)


async def send_request(
    method: str,
    url: str,
    params: Optional[Dict[str, str]] = None,
    data: Any = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[aiohttp.ClientTimeout] = None,
) -> UpstreamResponse:
    """
    Perform exactly one outbound request and buffer the response.

    Non-2xx statuses are returned, not raised; callers classify them.
    DNS, connection and timeout failures raise ServiceError(NETWORK_UNREACHABLE).
    """
    request_headers = {"User-Agent": settings.USER_AGENT}
    if headers:
        request_headers.update(headers)

    try:
        async with aiohttp.ClientSession(timeout=timeout or default_timeout()) as session:
            async with session.request(
                method=method,
                url=url,
                params=params,
                data=data,
                headers=request_headers,
                allow_redirects=True,
            ) as response:
                body = await response.read()
                return UpstreamResponse(
                    status=response.status,
                    body=body,
                    headers={key: value for key, value in response.headers.items()},
                )
    except asyncio.TimeoutError as exc:
        logger.error("Timed out calling %s %s", method, url)
        raise ServiceError(ErrorKind.NETWORK_UNREACHABLE, "Upstream service timed out") from exc
    except aiohttp.ClientError as exc:
        logger.error("Could not reach %s %s: %s", method, url, exc)
        raise ServiceError(
            ErrorKind.NETWORK_UNREACHABLE,
            "Unable to reach upstream service. Please check your connection and try again",
        ) from exc
