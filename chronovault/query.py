# chronovault/query.py
import logging
from typing import List, Optional

from . import codec
from .clock import now_ms
from .errors import ChronoVaultError, DecodeError, LoggingNotifier, NotFound, Notifier, fail
from .indexer import IndexerClient, IndexerError
from .schemas import DecodedSeal, StoredSealRecord, VaultCounts, VaultStatus

log = logging.getLogger(__name__)


def matches_search(seal: DecodedSeal, term: Optional[str]) -> bool:
    """Case-insensitive substring match on title, content and tags."""
    if not term:
        return True
    term = term.lower()
    parsed = seal.parsed_content
    if term in (parsed.title or "").lower() or term in (parsed.content or "").lower():
        return True
    return any(term in tag.lower() for tag in parsed.tags or [])


def filter_seals(seals: List[DecodedSeal], status: VaultStatus = "all",
                 search: Optional[str] = None) -> List[DecodedSeal]:
    """Vault filters: lock status and a free-text search. Order is kept."""
    out = []
    for seal in seals:
        if status == "locked" and seal.is_unlocked:
            continue
        if status == "unlocked" and not seal.is_unlocked:
            continue
        if matches_search(seal, search):
            out.append(seal)
    return out


def count_states(seals: List[DecodedSeal]) -> VaultCounts:
    unlocked = sum(1 for s in seals if s.is_unlocked)
    return VaultCounts(total=len(seals), locked=len(seals) - unlocked, unlocked=unlocked)


class SealQueryService:
    """
    Reads seals back from the indexer and decodes them. Lock state is
    computed against `clock()` on every call.
    """

    def __init__(self, indexer: IndexerClient, notify: Optional[Notifier] = None, clock=now_ms):
        self.indexer = indexer
        self.notify = notify or LoggingNotifier()
        self.clock = clock

    def _decode_record(self, record: StoredSealRecord, now: int) -> DecodedSeal:
        seal = codec.decode(record.data, now)
        return seal.model_copy(update={
            "id": record.transaction_hash,
            "tx_hash": record.transaction_hash,
            "block_number": record.block_number,
            "timestamp": record.timestamp,
            "sender": record.sender,
        })

    def _decode_all(self, records: List[StoredSealRecord]) -> List[DecodedSeal]:
        now = self.clock()
        seals = []
        for record in records:
            try:
                seals.append(self._decode_record(record, now))
            except DecodeError as e:
                # one corrupt record must not hide the rest
                log.debug("Skipping undecodable seal %s: %s", record.transaction_hash, e.cause or e)
        return seals

    async def get_by_transaction_id(self, tx_hash: str) -> Optional[DecodedSeal]:
        try:
            records = await self.indexer.by_transaction_hash(tx_hash)
        except IndexerError as e:
            fail(self.notify, ChronoVaultError("Failed to query seal data", cause=e))
            return None

        if not records:
            fail(self.notify, NotFound(f"No seal found for transaction {tx_hash}"))
            return None
        if len(records) > 1:
            log.warning("Indexer inconsistency: %d records for tx %s; using the first", len(records), tx_hash)

        try:
            return self._decode_record(records[0], self.clock())
        except DecodeError as e:
            fail(self.notify, e)
            return None

    async def get_by_owner(self, address: Optional[str]) -> List[DecodedSeal]:
        """All seals sent by `address`, newest ledger timestamp first."""
        if not address:
            log.warning("get_by_owner called without an address")
            return []
        try:
            records = await self.indexer.all_by_sender(address.lower())
        except IndexerError as e:
            fail(self.notify, ChronoVaultError("Failed to load seals", cause=e))
            return []
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return self._decode_all(records)

    async def list_recent(self, first: int = 100, skip: int = 0) -> List[DecodedSeal]:
        try:
            records = await self.indexer.recent(first=first, skip=skip)
        except IndexerError as e:
            fail(self.notify, ChronoVaultError("Failed to load seals", cause=e))
            return []
        return self._decode_all(records)
