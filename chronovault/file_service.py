# chronovault/file_service.py
"""
File storage collaborator: uploaded media are pinned to IPFS through Pinata
(or kept on local disk when no Pinata credentials are configured) and their
metadata is kept in the database under an opaque media id. Seals reference
media by that id only.
"""
import asyncio
import logging
import os
import secrets
import time
from pathlib import Path
from typing import List, Optional

from . import crud, pinata
from .errors import InvalidFile, MediaResolutionFailed
from .models import MediaRecord
from .schemas import MediaAsset
from .settings import settings

log = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


def media_type(mime_type: str) -> str:
    top = (mime_type or "").split("/")[0]
    return top if top in ("image", "audio", "video") else "other"


def validate_file(name: str, size: int, mime_type: str, max_size: Optional[int] = None,
                  allowed_types: Optional[List[str]] = None) -> List[str]:
    """Returns the list of problems with an upload; empty means it is acceptable."""
    max_size = max_size if max_size is not None else settings.MEDIA_MAX_SIZE
    allowed_types = allowed_types if allowed_types is not None else settings.allowed_media_types

    errors = []
    if size > max_size:
        errors.append(f"File exceeds the size limit ({round(max_size / 1024 / 1024)}MB)")
    if (mime_type or "").split("/")[0] not in allowed_types:
        errors.append(f"Unsupported file type: {mime_type}")
    if not name or len(name) > MAX_NAME_LENGTH:
        errors.append("File name is missing or too long")
    return errors


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    i = 0
    while i < len(units) - 1 and size >= 1024 ** (i + 1):
        i += 1
    value = round(size / 1024 ** i, 2)
    return f"{value:g} {units[i]}"


def get_file_extension(filename: str) -> str:
    """'photo.JPG' -> 'JPG'; no dot (or a leading dot only) -> ''."""
    stem, dot, ext = filename.rpartition(".")
    return ext if dot and stem else ""


def new_media_id() -> str:
    return f"file_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _to_asset(rec: MediaRecord) -> MediaAsset:
    return MediaAsset(
        id=rec.media_id,
        name=rec.name,
        size=rec.size,
        mimeType=rec.mime_type,
        type=rec.type,
        url=rec.url,
        uploadedAt=rec.uploaded_at,
    )


class FileStorage:
    def __init__(self, bind=None, media_dir: Optional[str] = None):
        self.bind = bind
        self.media_dir = Path(media_dir or settings.MEDIA_DIR)

    def _write_local(self, media_id: str, name: str, content: bytes) -> str:
        self.media_dir.mkdir(parents=True, exist_ok=True)
        ext = get_file_extension(name)
        path = self.media_dir / (f"{media_id}.{ext}" if ext else media_id)
        path.write_bytes(content)
        return path.resolve().as_uri()

    def store(self, content: bytes, name: str, mime_type: str) -> MediaAsset:
        """Validate and keep one upload. Raises InvalidFile or pinata.PinataError."""
        name = os.path.basename(name or "")
        errors = validate_file(name, len(content), mime_type)
        if errors:
            raise InvalidFile(errors)

        media_id = new_media_id()
        cid = None
        if pinata.is_configured():
            res = pinata.pin_file(name, content, mime_type, metadata={"name": name, "keyvalues": {"mediaId": media_id}})
            cid = res.get("IpfsHash") or res.get("ipfsHash")
            if not cid:
                raise pinata.PinataError("Pinata did not return CID")
            url = pinata.gateway_url(cid)
        else:
            url = self._write_local(media_id, name, content)

        rec = crud.create_media({
            "media_id": media_id,
            "name": name,
            "size": len(content),
            "mime_type": mime_type,
            "type": media_type(mime_type),
            "url": url,
            "ipfs_cid": cid,
        }, bind=self.bind)
        log.info("Stored media %s (%s, %s)", media_id, name, format_file_size(len(content)))
        return _to_asset(rec)

    def get(self, media_id: str) -> Optional[MediaAsset]:
        rec = crud.get_media(media_id, bind=self.bind)
        return _to_asset(rec) if rec else None

    async def resolve(self, media_id: str) -> MediaAsset:
        asset = await asyncio.to_thread(self.get, media_id)
        if asset is None:
            raise MediaResolutionFailed(media_id)
        return asset

    def delete(self, media_id: str) -> bool:
        return crud.delete_media(media_id, bind=self.bind)

    def list(self, type: Optional[str] = None, limit: Optional[int] = None) -> List[MediaAsset]:
        return [_to_asset(r) for r in crud.list_media(type=type, limit=limit, bind=self.bind)]
