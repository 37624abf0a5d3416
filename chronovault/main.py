# chronovault/main.py
import logging
from typing import List

import uvicorn
from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile

from .blockchain import Ledger
from .clock import describe_remaining, now_ms
from .crud import init_db
from .errors import CollectingNotifier, InvalidFile, LoggingNotifier
from .file_service import FileStorage
from .indexer import IndexerClient
from .media import MediaResolver
from .pinata import PinataError
from .query import SealQueryService, count_states, filter_seals
from .reveal import reveal
from .schemas import (
    CreateSealIn, CreateSealOut, DecodedSeal, MediaAsset, SealDraft, SealSummary, SealView, VaultOut, VaultStatus,
)
from .settings import configure_logging, settings
from .submission import SealSubmissionService
from .wallet import Wallet

log = logging.getLogger(__name__)

app = FastAPI(title="ChronoVault Backend")


@app.on_event("startup")
async def startup():
    configure_logging()
    init_db()
    ledger = Ledger()
    app.state.ledger = ledger
    app.state.indexer = IndexerClient()
    app.state.files = FileStorage()
    app.state.wallet = Wallet(ledger.w3, expected_chain_id=settings.CHAIN_ID)
    if settings.SUBMITTER_PK:
        try:
            await app.state.wallet.connect(settings.SUBMITTER_PK)
        except Exception:
            # the API still serves reads; seal creation reports NotConnected
            log.exception("Could not connect the submitter wallet")


@app.on_event("shutdown")
async def shutdown():
    wallet = getattr(app.state, "wallet", None)
    if wallet is not None:
        wallet.disconnect()


# ---------- dependencies ----------
def get_notifier() -> CollectingNotifier:
    return CollectingNotifier(forward=LoggingNotifier())


def get_files() -> FileStorage:
    return app.state.files


def get_wallet() -> Wallet:
    return app.state.wallet


def get_query_service(notify: CollectingNotifier = Depends(get_notifier)) -> SealQueryService:
    return SealQueryService(app.state.indexer, notify)


def get_submission_service(notify: CollectingNotifier = Depends(get_notifier)) -> SealSubmissionService:
    return SealSubmissionService(app.state.ledger, notify)


def _summary(seal: DecodedSeal) -> SealSummary:
    parsed = seal.parsed_content
    return SealSummary(
        id=seal.id,
        title=parsed.title,
        isUnlocked=seal.is_unlocked,
        unlockTime=seal.unlock_time,
        status=describe_remaining(seal.unlock_time, now_ms()),
        emotion=parsed.emotion,
        tags=parsed.tags,
        timestamp=seal.timestamp,
        blockNumber=seal.block_number,
    )


def _last_error(notify: CollectingNotifier, default: str) -> str:
    return notify.errors[-1].message if notify.errors else default


# ---------- media ----------
@app.post("/upload", response_model=MediaAsset, response_model_by_alias=True)
def upload_file(file: UploadFile = File(...), files: FileStorage = Depends(get_files)):
    """
    Accepts a media upload, stores it (Pinata when configured) and returns
    the asset metadata; its `id` goes into a seal's media ids.
    """
    content = file.file.read()
    try:
        return files.store(content, file.filename or "", file.content_type or "application/octet-stream")
    except InvalidFile as e:
        raise HTTPException(status_code=400, detail=e.errors)
    except PinataError as e:
        raise HTTPException(status_code=502, detail=f"Pinata error: {e}")


@app.get("/media/{media_id}", response_model=MediaAsset, response_model_by_alias=True)
def get_media(media_id: str, files: FileStorage = Depends(get_files)):
    asset = files.get(media_id)
    if asset is None:
        raise HTTPException(status_code=404, detail="Media file not found")
    return asset


# ---------- seals ----------
@app.post("/seals", response_model=CreateSealOut)
async def create_seal(
    data: CreateSealIn,
    service: SealSubmissionService = Depends(get_submission_service),
    wallet: Wallet = Depends(get_wallet),
    notify: CollectingNotifier = Depends(get_notifier),
):
    """
    Seal content until `unlock_time` (unix seconds) using the server's
    submitter account. Blocks until the transaction is mined.
    """
    try:
        draft = SealDraft(**data.model_dump())
        seal_id = await service.create_seal(draft, wallet.context)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if seal_id is None:
        raise HTTPException(status_code=502, detail=_last_error(notify, "Failed to create the seal"))
    return {"seal_id": seal_id}


@app.get("/seals", response_model=List[SealSummary], response_model_by_alias=True)
async def list_seals(
    first: int = Query(100, ge=1, le=1000),
    skip: int = Query(0, ge=0),
    service: SealQueryService = Depends(get_query_service),
):
    return [_summary(s) for s in await service.list_recent(first=first, skip=skip)]


@app.get("/owners/{address}/seals", response_model=VaultOut, response_model_by_alias=True)
async def owner_seals(
    address: str,
    status: VaultStatus = "all",
    q: str = "",
    service: SealQueryService = Depends(get_query_service),
):
    """
    An owner's vault, newest first, filtered by lock `status` and a search
    term `q`. Counts always cover the whole vault.
    """
    seals = await service.get_by_owner(address)
    return VaultOut(
        seals=[_summary(s) for s in filter_seals(seals, status, q)],
        counts=count_states(seals),
    )


@app.get("/seals/{tx_hash}", response_model=SealView, response_model_by_alias=True)
async def seal_detail(
    tx_hash: str,
    force: bool = False,
    service: SealQueryService = Depends(get_query_service),
    files: FileStorage = Depends(get_files),
    notify: CollectingNotifier = Depends(get_notifier),
):
    """
    One seal as a view. `force=true` reveals a locked seal for this request
    only; the view then reports `force_revealed` and `isUnlocked` stays false.
    """
    seal = await service.get_by_transaction_id(tx_hash)
    if seal is None:
        raise HTTPException(status_code=404, detail=_last_error(notify, "Seal not found"))
    return await reveal(seal, MediaResolver(files), force=force)


def run():
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
