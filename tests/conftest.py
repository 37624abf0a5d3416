"""Shared fixtures: an in-memory chain that both accepts storeData writes and
answers the subgraph's GraphQL queries, plus a controllable clock."""

import json

import httpx
import pytest
from eth_account import Account

from chronovault import codec
from chronovault.crud import init_db, make_engine
from chronovault.errors import CollectingNotifier
from chronovault.file_service import FileStorage
from chronovault.indexer import IndexerClient
from chronovault.settings import settings
from chronovault.wallet import SigningContext

TEST_PK = "0x" + "11" * 32
OTHER_PK = "0x" + "22" * 32
NOW_MS = 1_750_000_000_000


class FakeClock:
    def __init__(self, now: int = NOW_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int):
        self.now += seconds * 1000


class FakeChain:
    """storeData writes land here; the GraphQL handler reads them back."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.rows = []
        self.writes = 0
        self.fail_with = None
        self.revert = False

    def add_row(self, sender: str, data: str, timestamp: int = None, tx_hash: str = None) -> dict:
        n = len(self.rows) + 1
        row = {
            "id": f"0x{n:064x}-0",
            "sender": sender.lower(),
            "data": data,
            "timestamp": str(timestamp if timestamp is not None else self.clock() // 1000),
            "transactionHash": tx_hash or f"0x{n:064x}",
            "blockNumber": str(1000 + n),
        }
        self.rows.append(row)
        return row

    async def store_data(self, ctx, data: bytes):
        ctx.require()
        if self.fail_with is not None:
            raise self.fail_with
        self.writes += 1
        if self.revert:
            return {"status": 0, "transactionHash": "0x" + "ee" * 32, "blockNumber": 1}
        row = self.add_row(ctx.address, codec.to_hex(data))
        return {
            "status": 1,
            "transactionHash": bytes.fromhex(row["transactionHash"][2:]),
            "blockNumber": int(row["blockNumber"]),
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        variables = body.get("variables") or {}
        if "txHash" in variables:
            rows = [r for r in self.rows if r["transactionHash"] == variables["txHash"]]
        else:
            rows = self.rows
            if "userAddress" in variables:
                rows = [r for r in rows if r["sender"] == variables["userAddress"]]
            rows = sorted(rows, key=lambda r: int(r["timestamp"]), reverse=True)
            skip = variables.get("skip", 0)
            rows = rows[skip:skip + variables.get("first", 100)]
        return httpx.Response(200, json={"data": {"dataStoreds": rows}})

    def indexer(self) -> IndexerClient:
        return IndexerClient(endpoint="http://indexer.test/graphql", transport=httpx.MockTransport(self.handle))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def chain(clock):
    return FakeChain(clock)


@pytest.fixture
def notices():
    return CollectingNotifier()


@pytest.fixture
def signer():
    return SigningContext(account=Account.from_key(TEST_PK), chain_id=10143)


@pytest.fixture
def engine():
    eng = make_engine("sqlite:///:memory:")
    init_db(eng)
    return eng


@pytest.fixture
def files(engine, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "PINATA_JWT", None)
    monkeypatch.setattr(settings, "PINATA_API_KEY", None)
    monkeypatch.setattr(settings, "PINATA_API_SECRET", None)
    return FileStorage(bind=engine, media_dir=str(tmp_path / "media"))
