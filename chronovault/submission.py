# chronovault/submission.py
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from . import codec
from .blockchain import tx_hash_hex
from .clock import now_ms
from .errors import LoggingNotifier, Notifier, NotConnected, SubmissionFailed, fail, succeed
from .schemas import SealContent, SealDraft, SealPayload
from .wallet import SigningContext

log = logging.getLogger(__name__)


class LedgerWriter(Protocol):
    async def store_data(self, ctx: SigningContext, data: bytes): ...


def default_title(created: datetime) -> str:
    return f"Time Seal {created:%Y-%m-%d %H:%M}"


class SealSubmissionService:
    def __init__(self, ledger: LedgerWriter, notify: Optional[Notifier] = None, clock=now_ms):
        self.ledger = ledger
        self.notify = notify or LoggingNotifier()
        self.clock = clock

    async def submit(self, content: str, unlock_time: int, media_ids: str,
                     signer: Optional[SigningContext]) -> Optional[str]:
        """
        Encode and store one seal, waiting for the transaction to be mined.
        Returns the transaction hash (the seal id) or None on any failure.
        The unlock time is trusted: callers check that it lies in the future.
        """
        if signer is None or not signer.is_connected:
            fail(self.notify, NotConnected())
            return None

        payload = SealPayload(
            content=content,
            unlockTime=unlock_time,
            mediaIds=media_ids or "",
            creator=signer.address,
            createdAt=self.clock(),
        )
        data = codec.encode(payload)

        try:
            receipt = await self.ledger.store_data(signer, data)
        except NotConnected as e:
            fail(self.notify, e)
            return None
        except Exception as e:
            log.exception("storeData failed")
            fail(self.notify, SubmissionFailed(cause=e))
            return None

        if receipt.get("status", 1) == 0:
            fail(self.notify, SubmissionFailed("Seal transaction reverted"))
            return None

        tx_hash = tx_hash_hex(receipt["transactionHash"])
        log.info("Seal stored in tx %s (block %s)", tx_hash, receipt.get("blockNumber"))
        succeed(self.notify, "Time seal created")
        return tx_hash

    async def create_seal(self, draft: SealDraft, signer: Optional[SigningContext]) -> Optional[str]:
        """
        Author-side entry point: builds the nested content object (with a
        generated title when none is given) and submits it. Raises ValueError
        when the unlock time is not in the future.
        """
        now = self.clock()
        if draft.unlock_time * 1000 <= now:
            raise ValueError("Unlock time must be in the future")

        created = datetime.fromtimestamp(now / 1000, tz=timezone.utc)
        content = SealContent(
            title=draft.title or default_title(created),
            content=draft.content,
            createdAt=created.isoformat().replace("+00:00", "Z"),
            emotion=draft.emotion,
            tags=draft.tags,
        )
        return await self.submit(
            codec.encode_content(content),
            draft.unlock_time,
            ",".join(m.strip() for m in draft.media_ids if m.strip()),
            signer,
        )
