# chronovault/codec.py
"""
Seal wire format.

Layer 1 is the object stored on the ledger as UTF-8 JSON bytes:
    {content, unlockTime, mediaIds, creator, createdAt}
Layer 2 is the `content` field itself, a JSON string of the authored
presentation fields {title, content, createdAt, emotion?, tags?}.

Readers accept the payload as raw UTF-8 or as 0x-prefixed hex of it.
"""
import json
import logging
from typing import Optional, Union

from hexbytes import HexBytes
from pydantic import ValidationError

from .clock import is_unlocked, now_ms
from .errors import DecodeError
from .schemas import DecodedSeal, SealContent, SealPayload

log = logging.getLogger(__name__)


def _field_keys(model, exclude=()) -> frozenset:
    keys = set()
    for name, f in model.model_fields.items():
        if name in exclude:
            continue
        keys.add(name)
        if f.alias:
            keys.add(f.alias)
    return frozenset(keys)


# computed or attached at read time, under either spelling; a payload cannot supply them
_DERIVED_KEYS = _field_keys(DecodedSeal, exclude=SealPayload.model_fields)
# every key DecodedSeal would read; payload extras must not shadow them
_SEAL_KEYS = _field_keys(DecodedSeal)


def _dumps(obj: dict) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def encode_content(content: SealContent) -> str:
    """Serialize the layer-2 object into the string carried by `content`."""
    return _dumps(content.model_dump(by_alias=True, exclude_none=True))


def encode(payload: Union[SealPayload, dict]) -> bytes:
    if isinstance(payload, dict):
        payload = SealPayload.model_validate(payload)
    return _dumps(payload.model_dump(by_alias=True)).encode("utf-8")


def to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def _payload_text(data: Union[bytes, str]) -> str:
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data)
        if data[:2] in (b"0x", b"0X"):
            data = data.decode("ascii")
        else:
            return data.decode("utf-8")
    if data[:2] in ("0x", "0X"):
        return bytes(HexBytes(data)).decode("utf-8")
    return data


def parse_content(raw: str) -> SealContent:
    """
    Parse the nested layer-2 content. Anything that is not a JSON object
    degrades to plain text instead of failing the seal.
    """
    try:
        obj = json.loads(raw)
        if isinstance(obj, dict):
            return SealContent.model_validate(obj)
    except (ValueError, ValidationError):
        pass
    log.debug("seal content is not layer-2 JSON, keeping it as plain text")
    return SealContent(content=raw, is_plain_text=True)


def decode(data: Union[bytes, str], now: Optional[int] = None) -> DecodedSeal:
    """
    Decode a stored payload into a DecodedSeal with `is_unlocked` computed
    against `now` (milliseconds). Raises DecodeError on a malformed layer 1.
    """
    try:
        text = _payload_text(data)
        obj = json.loads(text)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(cause=e)
    if not isinstance(obj, dict):
        raise DecodeError("Seal payload is not a JSON object")

    for key in _DERIVED_KEYS:
        obj.pop(key, None)

    content = obj.get("content")
    try:
        if isinstance(content, dict):
            # some writers embed layer 2 as an object rather than a string
            parsed = SealContent.model_validate(content)
            obj["content"] = _dumps(content)
        elif isinstance(content, str):
            parsed = parse_content(content)
        else:
            raise DecodeError("Seal payload has no content")
        payload = SealPayload.model_validate(obj)
    except ValidationError as e:
        raise DecodeError(cause=e)

    extras = payload.model_extra or {}
    fields = {
        k: v for k, v in payload.model_dump(by_alias=True).items()
        if k not in extras or k not in _SEAL_KEYS
    }
    fields["parsedContent"] = parsed
    fields["isUnlocked"] = is_unlocked(payload.unlock_time, now if now is not None else now_ms())
    try:
        return DecodedSeal.model_validate(fields)
    except ValidationError as e:
        raise DecodeError(cause=e)
