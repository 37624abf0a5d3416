import asyncio
import json
import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from chronovault import codec, main
from chronovault.main import app
from chronovault.schemas import SealPayload
from chronovault.settings import settings
from chronovault.wallet import Wallet

from .conftest import TEST_PK


@pytest.fixture
def client(chain, files):
    app.state.ledger = chain
    app.state.indexer = chain.indexer()
    app.state.files = files
    app.state.wallet = Wallet(expected_chain_id=10143)
    return TestClient(app)


@pytest.fixture
def connected(client):
    asyncio.run(app.state.wallet.connect(TEST_PK))
    return client


def _future(seconds=3600):
    return int(time.time()) + seconds


def test_create_then_view_locked_seal(connected, chain):
    res = connected.post("/seals", json={"title": "Hi", "content": "hello", "unlock_time": _future()})
    assert res.status_code == 200
    seal_id = res.json()["seal_id"]
    assert seal_id == chain.rows[0]["transactionHash"]

    view = connected.get(f"/seals/{seal_id}").json()
    assert view["state"] == "locked"
    assert view["isUnlocked"] is False
    assert view["content"] is None
    left = view["remaining"]
    assert left["days"] == 0
    assert left["hours"] * 60 + left["minutes"] in (59, 60)


def test_force_reveal_query_flag(connected, files):
    media = connected.post("/upload", files={"file": ("a.png", b"png", "image/png")}).json()
    res = connected.post("/seals", json={
        "content": "secret", "unlock_time": _future(), "media_ids": [media["id"]],
    })
    seal_id = res.json()["seal_id"]

    view = connected.get(f"/seals/{seal_id}", params={"force": "true"}).json()
    assert view["state"] == "force_revealed"
    assert view["isUnlocked"] is False
    assert view["content"] == "secret"
    assert [m["id"] for m in view["media"]] == [media["id"]]


def test_create_without_wallet_is_502(client, chain):
    res = client.post("/seals", json={"content": "hello", "unlock_time": _future()})
    assert res.status_code == 502
    assert res.json()["detail"] == "Please connect a wallet first"
    assert chain.writes == 0


@pytest.mark.parametrize("body", [
    {"content": "hello", "unlock_time": 1},
    {"content": "  ", "unlock_time": 4102444800},
])
def test_create_validation_is_400(connected, body):
    assert connected.post("/seals", json=body).status_code == 400


def test_unknown_seal_is_404(client):
    assert client.get("/seals/0x" + "00" * 32).status_code == 404


def test_owner_listing_skips_corrupt_rows(client, chain):
    owner = "0x" + "ab" * 20
    good = SealPayload(content=json.dumps({"title": "kept", "content": "x"}), unlockTime=1,
                       mediaIds="", creator=owner, createdAt=1)
    chain.add_row(owner, codec.to_hex(codec.encode(good)), timestamp=5)
    chain.add_row(owner, "0xdeadbeef", timestamp=6)

    body = client.get(f"/owners/{owner.upper().replace('0X', '0x')}/seals").json()
    seals = body["seals"]
    assert [s["title"] for s in seals] == ["kept"]
    assert seals[0]["isUnlocked"] is True
    assert seals[0]["status"] == "Unlocked"
    assert body["counts"] == {"total": 1, "locked": 0, "unlocked": 1}


VAULT_OWNER = "0x" + "cd" * 20


@pytest.fixture
def vault(client, chain):
    def add(title, body, unlock, tags=None, ts=0):
        inner = {"title": title, "content": body}
        if tags:
            inner["tags"] = tags
        payload = SealPayload(content=json.dumps(inner), unlockTime=unlock, mediaIds="",
                              creator=VAULT_OWNER, createdAt=1)
        chain.add_row(VAULT_OWNER, codec.to_hex(codec.encode(payload)), timestamp=ts)

    add("Birthday letter", "open on my 30th", 1, tags=["Family"], ts=1)
    add("Summer trip", "the LAKE at dawn", _future(), ts=2)
    add("Exam notes", "good luck", _future(), tags=["school"], ts=3)
    return client


def _titles(client, **params):
    body = client.get(f"/owners/{VAULT_OWNER}/seals", params=params).json()
    return [s["title"] for s in body["seals"]], body["counts"]


def test_vault_counts_cover_whole_vault(vault):
    titles, counts = _titles(vault, status="locked")
    assert titles == ["Exam notes", "Summer trip"]
    assert counts == {"total": 3, "locked": 2, "unlocked": 1}


@pytest.mark.parametrize("params, expected", [
    ({}, ["Exam notes", "Summer trip", "Birthday letter"]),
    ({"status": "unlocked"}, ["Birthday letter"]),
    ({"q": "lake"}, ["Summer trip"]),
    ({"q": "FAMILY"}, ["Birthday letter"]),
    ({"q": "exam"}, ["Exam notes"]),
    ({"q": "lake", "status": "unlocked"}, []),
])
def test_vault_filters(vault, params, expected):
    assert _titles(vault, **params)[0] == expected


def test_vault_rejects_unknown_status(vault):
    assert vault.get(f"/owners/{VAULT_OWNER}/seals", params={"status": "sealed"}).status_code == 422


def test_run_serves_app_with_configured_host_and_port(monkeypatch):
    monkeypatch.setattr(settings, "HOST", "0.0.0.0")
    monkeypatch.setattr(settings, "PORT", 9001)
    with patch("chronovault.main.uvicorn.run") as served:
        main.run()
    args, kwargs = served.call_args
    assert args == (app,)
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9001


def test_recent_feed(client, chain):
    payload = SealPayload(content="plain words", unlockTime=_future(), mediaIds="", creator="0x1", createdAt=1)
    chain.add_row("0x" + "01" * 20, codec.to_hex(codec.encode(payload)))
    body = client.get("/seals", params={"first": 10}).json()
    assert len(body) == 1
    assert body[0]["isUnlocked"] is False
    assert body[0]["status"].endswith("until unlock")


def test_upload_rejects_bad_type(client):
    res = client.post("/upload", files={"file": ("notes.txt", b"hi", "text/plain")})
    assert res.status_code == 400


def test_get_media(client):
    media = client.post("/upload", files={"file": ("song.mp3", b"id3", "audio/mpeg")}).json()
    assert client.get(f"/media/{media['id']}").json()["mimeType"] == "audio/mpeg"
    assert client.get("/media/file_nope").status_code == 404
