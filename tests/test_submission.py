import asyncio
import json

import pytest

from chronovault import codec
from chronovault.errors import NotConnected, SubmissionFailed
from chronovault.schemas import SealDraft
from chronovault.submission import SealSubmissionService, default_title


@pytest.fixture
def service(chain, notices, clock):
    return SealSubmissionService(chain, notices, clock=clock)


def _stored_payload(chain) -> dict:
    return json.loads(bytes.fromhex(chain.rows[-1]["data"][2:]))


def test_submit_writes_once_and_returns_tx_hash(service, chain, signer, clock):
    unlock = clock() // 1000 + 3600
    tx = asyncio.run(service.submit('{"title":"t","content":"hello"}', unlock, "", signer))

    assert tx == chain.rows[0]["transactionHash"]
    assert chain.writes == 1
    payload = _stored_payload(chain)
    assert payload == {
        "content": '{"title":"t","content":"hello"}',
        "unlockTime": unlock,
        "mediaIds": "",
        "creator": signer.address,
        "createdAt": clock(),
    }


def test_submit_without_signer_returns_none(service, chain, notices, clock):
    assert asyncio.run(service.submit("x", clock() // 1000 + 60, "", None)) is None
    assert chain.writes == 0
    assert isinstance(notices.errors[-1].error, NotConnected)


def test_submit_with_invalidated_signer_returns_none(service, chain, notices, signer, clock):
    signer.invalidate()
    assert asyncio.run(service.submit("x", clock() // 1000 + 60, "", signer)) is None
    assert chain.writes == 0
    assert isinstance(notices.errors[-1].error, NotConnected)


def test_ledger_error_is_reported_not_raised(service, chain, notices, signer, clock):
    chain.fail_with = TimeoutError("no receipt")
    assert asyncio.run(service.submit("x", clock() // 1000 + 60, "", signer)) is None
    err = notices.errors[-1].error
    assert isinstance(err, SubmissionFailed)
    assert isinstance(err.cause, TimeoutError)


def test_reverted_transaction_is_a_failure(service, chain, notices, signer, clock):
    chain.revert = True
    assert asyncio.run(service.submit("x", clock() // 1000 + 60, "", signer)) is None
    assert isinstance(notices.errors[-1].error, SubmissionFailed)


def test_no_automatic_retry(service, chain, signer, clock):
    chain.fail_with = ConnectionError("rpc down")
    asyncio.run(service.submit("x", clock() // 1000 + 60, "", signer))
    chain.fail_with = None
    assert chain.writes == 0
    assert chain.rows == []


def test_create_seal_builds_nested_content(service, chain, signer, clock):
    draft = SealDraft(
        content="see you in a year",
        unlock_time=clock() // 1000 + 86400,
        media_ids=[" file_a ", "", "file_b"],
        emotion="calm",
        tags=["birthday"],
    )
    tx = asyncio.run(service.create_seal(draft, signer))
    assert tx is not None

    seal = codec.decode(chain.rows[-1]["data"], clock())
    assert seal.media_ids == "file_a,file_b"
    assert seal.parsed_content.content == "see you in a year"
    assert seal.parsed_content.emotion == "calm"
    assert seal.parsed_content.tags == ["birthday"]
    assert seal.title == "Time Seal 2025-06-15 15:06"
    assert seal.parsed_content.created_at == "2025-06-15T15:06:40Z"


def test_create_seal_keeps_given_title(service, chain, signer, clock):
    draft = SealDraft(title="Graduation", content="congrats", unlock_time=clock() // 1000 + 10)
    asyncio.run(service.create_seal(draft, signer))
    assert codec.decode(chain.rows[-1]["data"], clock()).title == "Graduation"


def test_create_seal_rejects_past_unlock_time(service, chain, signer, clock):
    draft = SealDraft(content="too late", unlock_time=clock() // 1000)
    with pytest.raises(ValueError):
        asyncio.run(service.create_seal(draft, signer))
    assert chain.writes == 0


def test_draft_requires_content():
    with pytest.raises(ValueError):
        SealDraft(content="   ", unlock_time=1)


def test_default_title_format():
    from datetime import datetime

    assert default_title(datetime(2024, 2, 29, 8, 5)) == "Time Seal 2024-02-29 08:05"
