from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel


class DownloadRequest(BaseModel):
    url: Optional[str] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class DownloadedFile:
    """Fully buffered remote file, ready to be sent as an attachment."""

    content: bytes
    content_type: str
    filename: str

    @property
    def size_bytes(self) -> int:
        return len(self.content)
