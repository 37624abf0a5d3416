# chronovault/blockchain.py
import json
import logging
import os
from typing import Optional

from hexbytes import HexBytes
from web3 import AsyncWeb3

from .settings import settings
from .wallet import SigningContext

log = logging.getLogger(__name__)

# load ABI
HERE = os.path.dirname(__file__)
ABI_PATH = os.path.join(HERE, "artifacts", "DataToZeroAddress.json")
with open(ABI_PATH) as f:
    artifact = json.load(f)
ABI = artifact.get("abi", artifact)  # if the file is just the abi array


def get_chain_id():
    return int(settings.CHAIN_ID)


def make_web3(rpc_url: Optional[str] = None) -> AsyncWeb3:
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url or settings.RPC_URL))


def tx_hash_hex(value) -> str:
    """
    Normalise a transaction hash (HexBytes, bytes or str) to '0x'-prefixed
    lowercase hex, whatever HexBytes.hex() returns in the installed version.
    """
    h = HexBytes(value).hex()
    return h if h.startswith("0x") else "0x" + h


def _raw_transaction(signed_tx) -> bytes:
    """
    Works with both eth-account return shapes:
      - signed_tx.rawTransaction  (older)
      - signed_tx.raw_transaction (newer)
    """
    raw = getattr(signed_tx, "raw_transaction", None)
    if raw is None:
        raw = getattr(signed_tx, "rawTransaction", None)
    if raw is None:
        raise RuntimeError("Signed transaction object does not contain raw tx bytes (rawTransaction/raw_transaction)")
    return raw


class Ledger:
    """
    Write side of the ledger: one `storeData(bytes)` call per seal. The
    contract emits `DataStored(sender, data, timestamp)`, which the indexer
    picks up.
    """

    def __init__(self, w3: Optional[AsyncWeb3] = None, contract_address: Optional[str] = None,
                 gas: Optional[int] = None, receipt_timeout: float = 120):
        self.w3 = w3 or make_web3()
        self.contract = self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address or settings.CONTRACT_ADDRESS),
            abi=ABI,
        )
        self.gas = gas or settings.SUBMIT_GAS
        self.receipt_timeout = receipt_timeout

    async def _send_signed_transaction_and_wait(self, signed_tx):
        tx_hash = await self.w3.eth.send_raw_transaction(_raw_transaction(signed_tx))
        log.info("storeData sent: %s, waiting for receipt", tx_hash_hex(tx_hash))
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)

    async def store_data(self, ctx: SigningContext, data: bytes):
        """
        Sign and send `storeData(data)` from the context's account and block
        until the transaction is mined. Returns the receipt.
        """
        acct = ctx.require().account
        tx = await self.contract.functions.storeData(data).build_transaction({
            "from": acct.address,
            "nonce": await self.w3.eth.get_transaction_count(acct.address),
            "gas": self.gas,
            "gasPrice": await self.w3.eth.gas_price,
            "chainId": ctx.chain_id or get_chain_id(),
        })
        signed = acct.sign_transaction(tx)
        return await self._send_signed_transaction_and_wait(signed)
