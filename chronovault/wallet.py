# chronovault/wallet.py
"""
Connection state lives here, outside the seal services.

A Wallet owns the lifecycle: `connect` creates a SigningContext, and
`disconnect` / `switch_account` invalidate it. Services only ever receive
a context as an argument. Account and network changes are published as a
stream of ConnectionEvent values for the presentation layer to consume.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3

from .errors import NotConnected, WrongNetwork

log = logging.getLogger(__name__)


class ConnectionEventKind(str, Enum):
    CONNECTED = "connected"
    ACCOUNT_CHANGED = "account_changed"
    CHAIN_CHANGED = "chain_changed"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ConnectionEvent:
    kind: ConnectionEventKind
    address: Optional[str] = None
    chain_id: Optional[int] = None


@dataclass(eq=False)
class SigningContext:
    """The identity a single submission signs with."""

    account: LocalAccount
    chain_id: int
    _valid: bool = field(default=True, repr=False)

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def is_connected(self) -> bool:
        return self._valid

    def invalidate(self):
        self._valid = False

    def require(self) -> "SigningContext":
        if not self._valid:
            raise NotConnected()
        return self


class Wallet:
    def __init__(self, w3: Optional[AsyncWeb3] = None, expected_chain_id: Optional[int] = None):
        self.w3 = w3
        self.expected_chain_id = expected_chain_id
        self.context: Optional[SigningContext] = None
        self._subscribers: list[asyncio.Queue] = []

    @property
    def is_connected(self) -> bool:
        return self.context is not None and self.context.is_connected

    async def _chain_id(self) -> Optional[int]:
        if self.w3 is None:
            return self.expected_chain_id
        return int(await self.w3.eth.chain_id)

    async def _open(self, private_key: str) -> SigningContext:
        chain_id = await self._chain_id()
        if self.expected_chain_id is not None and chain_id != self.expected_chain_id:
            raise WrongNetwork(f"Expected chain {self.expected_chain_id}, node reports {chain_id}")

        if self.context is not None:
            self.context.invalidate()
        self.context = SigningContext(account=Account.from_key(private_key), chain_id=chain_id or 0)
        return self.context

    async def connect(self, private_key: str) -> SigningContext:
        """
        Build a signing context for `private_key`. When a web3 connection is
        attached, the node's chain id must match the expected one.
        """
        ctx = await self._open(private_key)
        log.info("Wallet connected: %s (chain %s)", ctx.address, ctx.chain_id)
        self._publish(ConnectionEvent(ConnectionEventKind.CONNECTED, ctx.address, ctx.chain_id))
        return ctx

    async def switch_account(self, private_key: str) -> SigningContext:
        ctx = await self._open(private_key)
        log.info("Wallet account changed: %s", ctx.address)
        self._publish(ConnectionEvent(ConnectionEventKind.ACCOUNT_CHANGED, ctx.address, ctx.chain_id))
        return ctx

    def chain_changed(self, chain_id: int):
        """A chain switch drops the current context; the caller reconnects."""
        self._publish(ConnectionEvent(ConnectionEventKind.CHAIN_CHANGED, chain_id=chain_id))
        if self.context is not None and chain_id != self.context.chain_id:
            self.disconnect()

    def disconnect(self):
        if self.context is None:
            return
        self.context.invalidate()
        address = self.context.address
        self.context = None
        log.info("Wallet disconnected: %s", address)
        self._publish(ConnectionEvent(ConnectionEventKind.DISCONNECTED, address))

    def _publish(self, event: ConnectionEvent):
        for q in self._subscribers:
            q.put_nowait(event)

    async def events(self) -> AsyncIterator[ConnectionEvent]:
        """
        Connection events in publish order. The subscription starts with the
        first `__anext__` and ends when the iterator is closed.
        """
        q: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(q)
        try:
            while True:
                yield await q.get()
        finally:
            self._subscribers.remove(q)
