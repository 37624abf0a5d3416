# chronovault/crud.py

from typing import List, Optional

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from .models import MediaRecord
from .settings import settings


# ---------- Database Setup ----------
def make_engine(url: Optional[str] = None):
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite") and ":memory:" in url:
        # one shared connection, otherwise every session sees an empty database
        return create_engine(url, echo=False, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False)


engine = make_engine()


def init_db(bind=None):
    """Initialize all SQLModel tables."""
    SQLModel.metadata.create_all(bind or engine)


# ---------- MEDIA CRUD ----------
def create_media(obj: dict, bind=None) -> MediaRecord:
    """Store metadata for a newly uploaded file."""
    with Session(bind or engine) as s:
        rec = MediaRecord(**obj)
        s.add(rec)
        s.commit()
        s.refresh(rec)
        return rec


def get_media(media_id: str, bind=None) -> Optional[MediaRecord]:
    """Fetch a file's metadata by its media id."""
    with Session(bind or engine) as s:
        q = select(MediaRecord).where(MediaRecord.media_id == media_id)
        return s.exec(q).first()


def list_media(type: Optional[str] = None, limit: Optional[int] = None, bind=None) -> List[MediaRecord]:
    """List uploaded files, newest first."""
    with Session(bind or engine) as s:
        q = select(MediaRecord)
        if type:
            q = q.where(MediaRecord.type == type)
        q = q.order_by(MediaRecord.uploaded_at.desc(), MediaRecord.id.desc())
        if limit:
            q = q.limit(limit)
        return list(s.exec(q).all())


def delete_media(media_id: str, bind=None) -> bool:
    """Remove a file's metadata. Returns False when it did not exist."""
    with Session(bind or engine) as s:
        q = select(MediaRecord).where(MediaRecord.media_id == media_id)
        rec = s.exec(q).first()
        if not rec:
            return False
        s.delete(rec)
        s.commit()
        return True
