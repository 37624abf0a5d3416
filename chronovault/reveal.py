# chronovault/reveal.py
from typing import Optional

from .clock import is_unlocked, now_ms, remaining
from .media import MediaResolver
from .schemas import DecodedSeal, RevealState, SealView


def reveal_state(seal: DecodedSeal, force: bool = False, now: Optional[int] = None) -> RevealState:
    """
    Natural unlock wins over `force`. With `now` the lock state is
    recomputed; without it the seal's decode-time value is used.
    """
    unlocked = seal.is_unlocked if now is None else is_unlocked(seal.unlock_time, now)
    if unlocked:
        return RevealState.UNLOCKED
    if force:
        return RevealState.FORCE_REVEALED
    return RevealState.LOCKED


async def reveal(seal: DecodedSeal, resolver: MediaResolver, force: bool = False,
                 now: Optional[int] = None) -> SealView:
    """
    Build the view of one seal for a single presentation request.

    Lock state is evaluated against `now` (milliseconds, wall clock by
    default), so a seal decoded before its unlock time is shown unlocked
    once that time has passed. `force` is the caller's explicit request to
    see a locked seal early. It exposes content and media as if unlocked,
    but the view reports FORCE_REVEALED and `is_unlocked` keeps the natural
    value. Media is only resolved when the seal is revealable.
    """
    if now is None:
        now = now_ms()
    state = reveal_state(seal, force, now)
    parsed = seal.parsed_content
    view = {
        "sealId": seal.id,
        "title": parsed.title,
        "state": state,
        "isUnlocked": state is RevealState.UNLOCKED,
        "unlockTime": seal.unlock_time,
        "creator": seal.creator,
        "emotion": parsed.emotion,
        "tags": parsed.tags,
    }
    if state is RevealState.LOCKED:
        view["remaining"] = remaining(seal.unlock_time, now)
        return SealView(**view)

    view["content"] = parsed.content
    view["media"] = await resolver.resolve_all(seal.media_ids)
    return SealView(**view)
