# chronovault/media.py
import asyncio
import logging
from typing import List, Optional, Protocol

from .errors import MediaResolutionFailed
from .schemas import MediaAsset, split_media_ids

log = logging.getLogger(__name__)


class FileResolver(Protocol):
    async def resolve(self, media_id: str) -> MediaAsset: ...


class MediaResolver:
    def __init__(self, files: FileResolver):
        self.files = files

    async def _resolve_one(self, media_id: str) -> Optional[MediaAsset]:
        try:
            return await self.files.resolve(media_id)
        except MediaResolutionFailed as e:
            log.warning("%s", e)
        except Exception:
            log.exception("Failed to load media file %s", media_id)
        return None

    async def resolve_all(self, media_ids: Optional[str]) -> List[MediaAsset]:
        """
        Resolve a comma-joined id list concurrently. Ids that cannot be
        resolved are dropped; the rest keep their original order.
        """
        ids = split_media_ids(media_ids)
        if not ids:
            return []
        results = await asyncio.gather(*(self._resolve_one(i) for i in ids))
        return [asset for asset in results if asset is not None]
