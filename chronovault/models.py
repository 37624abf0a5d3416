# chronovault/models.py
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaRecord(SQLModel, table=True):
    """Metadata of one uploaded media file; seals only carry its `media_id`."""

    id: Optional[int] = Field(default=None, primary_key=True)
    media_id: str = Field(index=True, unique=True)
    name: str
    size: int
    mime_type: str
    type: str = "other"
    url: str
    ipfs_cid: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=_utcnow)
