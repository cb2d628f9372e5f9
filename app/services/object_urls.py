from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    content: bytes
    media_type: str


class ObjectUrlRegistry:
    """Revocable in-memory handles to binary content, like browser object URLs.

    Whoever calls ``create`` owns the handle and must ``revoke`` it.
    """

    def __init__(self) -> None:
        self._blobs: Dict[str, StoredBlob] = {}

    def create(self, content: bytes, media_type: str = "application/octet-stream") -> str:
        url = f"blob:{uuid.uuid4()}"
        self._blobs[url] = StoredBlob(content=content, media_type=media_type)
        logger.debug("Created object URL %s (%d bytes)", url, len(content))
        return url

    def resolve(self, url: str) -> Optional[StoredBlob]:
        return self._blobs.get(url)

    def revoke(self, url: str) -> None:
        if self._blobs.pop(url, None) is not None:
            logger.debug("Revoked object URL %s", url)

    @property
    def live_urls(self) -> List[str]:
        return list(self._blobs)

    def __len__(self) -> int:
        return len(self._blobs)
