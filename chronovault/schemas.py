# chronovault/schemas.py
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Wire(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(populate_by_name=True, frozen=True)


def split_media_ids(media_ids: Optional[str]) -> List[str]:
    """'a, b,,c,' -> ['a', 'b', 'c']"""
    if not media_ids:
        return []
    return [m.strip() for m in media_ids.split(",") if m.strip()]


class SealContent(_Wire):
    """Layer 2: the presentational object serialized into the payload's `content`."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    title: str = "Untitled seal"
    content: str = ""
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    emotion: Optional[str] = None
    tags: Optional[List[str]] = None
    # set by the decoder when the nested content was not JSON
    is_plain_text: bool = Field(default=False, exclude=True)


class SealPayload(_Wire):
    """Layer 1: the object whose UTF-8 JSON bytes are stored on the ledger."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    content: str
    unlock_time: int = Field(alias="unlockTime")
    media_ids: str = Field(default="", alias="mediaIds")
    creator: Optional[str] = None
    created_at: Optional[Union[int, float, str]] = Field(default=None, alias="createdAt")

    @field_validator("media_ids", mode="before")
    @classmethod
    def _join_media_ids(cls, v):
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return ",".join(str(m) for m in v)
        return v

    @property
    def media_id_list(self) -> List[str]:
        return split_media_ids(self.media_ids)


class StoredSealRecord(_Wire):
    """One `DataStored` row as returned by the indexer."""

    id: str
    sender: str
    data: str
    timestamp: int
    transaction_hash: str = Field(alias="transactionHash")
    block_number: int = Field(alias="blockNumber")


class DecodedSeal(SealPayload):
    parsed_content: SealContent = Field(alias="parsedContent")
    # derived at read time, never persisted
    is_unlocked: bool = Field(alias="isUnlocked")

    # ledger metadata, attached by the query service
    id: Optional[str] = None
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    timestamp: Optional[int] = None
    sender: Optional[str] = None

    @property
    def title(self) -> str:
        return self.parsed_content.title


class SealDraft(BaseModel):
    """What a user authors before submission."""

    title: Optional[str] = None
    content: str
    unlock_time: int
    media_ids: List[str] = Field(default_factory=list)
    emotion: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("content")
    @classmethod
    def _content_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Seal content is required")
        return v


MediaType = Literal["image", "audio", "video", "other"]


class MediaAsset(_Wire):
    id: str
    name: str
    size: int
    mime_type: str = Field(alias="mimeType")
    type: MediaType = "other"
    url: str
    uploaded_at: Optional[datetime] = Field(default=None, alias="uploadedAt")


class TimeRemaining(BaseModel):
    model_config = ConfigDict(frozen=True)

    days: int
    hours: int
    minutes: int
    seconds: int


class RevealState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    FORCE_REVEALED = "force_revealed"


class SealView(_Wire):
    """Presentation-time view of a seal; the force flag only lives here."""

    seal_id: Optional[str] = Field(default=None, alias="sealId")
    title: str
    state: RevealState
    is_unlocked: bool = Field(alias="isUnlocked")
    unlock_time: int = Field(alias="unlockTime")
    creator: Optional[str] = None
    content: Optional[str] = None
    emotion: Optional[str] = None
    tags: Optional[List[str]] = None
    media: List[MediaAsset] = Field(default_factory=list)
    remaining: Optional[TimeRemaining] = None


# ---------- HTTP schemas ----------
class CreateSealIn(BaseModel):
    title: Optional[str] = None
    content: str
    unlock_time: int
    media_ids: List[str] = Field(default_factory=list)
    emotion: Optional[str] = None
    tags: Optional[List[str]] = None


class CreateSealOut(BaseModel):
    seal_id: str


class SealSummary(_Wire):
    id: Optional[str]
    title: str
    is_unlocked: bool = Field(alias="isUnlocked")
    unlock_time: int = Field(alias="unlockTime")
    status: str
    emotion: Optional[str] = None
    tags: Optional[List[str]] = None
    timestamp: Optional[int] = None
    block_number: Optional[int] = Field(default=None, alias="blockNumber")


VaultStatus = Literal["all", "locked", "unlocked"]


class VaultCounts(BaseModel):
    total: int = 0
    locked: int = 0
    unlocked: int = 0


class VaultOut(BaseModel):
    """An owner's seals after filtering; counts are over the whole vault."""

    seals: List[SealSummary]
    counts: VaultCounts
