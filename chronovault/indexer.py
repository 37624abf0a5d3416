# chronovault/indexer.py
"""
Read side: GraphQL queries against the subgraph that indexes `DataStored`.
"""
import logging
from typing import List, Optional

import httpx

from .schemas import StoredSealRecord
from .settings import settings

log = logging.getLogger(__name__)

_FIELDS = """
      id
      sender
      data
      timestamp
      transactionHash
      blockNumber
"""

GET_USER_SEALS = """
  query GetUserSeals($userAddress: String!, $first: Int = 100, $skip: Int = 0) {
    dataStoreds(
      where: { sender: $userAddress }
      orderBy: timestamp
      orderDirection: desc
      first: $first
      skip: $skip
    ) {%s}
  }
""" % _FIELDS

GET_SEAL_BY_TX_HASH = """
  query GetSealByTxHash($txHash: String!) {
    dataStoreds(where: { transactionHash: $txHash }) {%s}
  }
""" % _FIELDS

GET_ALL_SEALS = """
  query GetAllSeals($first: Int = 100, $skip: Int = 0) {
    dataStoreds(
      first: $first
      skip: $skip
      orderBy: timestamp
      orderDirection: desc
    ) {%s}
  }
""" % _FIELDS


# largest `skip` the hosted subgraph accepts
MAX_SKIP = 5000


class IndexerError(Exception):
    """The indexer could not be reached or answered with GraphQL errors."""


class IndexerClient:
    """
    Thin GraphQL-over-HTTP client. Every call goes to the network: lock
    state depends on read time, so responses are never cached.
    """

    def __init__(self, endpoint: Optional[str] = None, client: Optional[httpx.AsyncClient] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.endpoint = endpoint or settings.GRAPHQL_ENDPOINT
        self._client = client
        self._transport = transport
        self.timeout = timeout or settings.INDEXER_TIMEOUT

    async def _post(self, query: str, variables: dict) -> dict:
        headers = {"Cache-Control": "no-cache", "Pragma": "no-cache"}
        body = {"query": query, "variables": variables}
        try:
            if self._client is not None:
                res = await self._client.post(self.endpoint, json=body, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    res = await client.post(self.endpoint, json=body, headers=headers)
            res.raise_for_status()
            payload = res.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IndexerError(f"Indexer request failed: {e}") from e

        if payload.get("errors"):
            messages = "; ".join(err.get("message", "?") for err in payload["errors"])
            raise IndexerError(f"GraphQL error: {messages}")
        return payload.get("data") or {}

    async def _rows(self, query: str, variables: dict) -> List[dict]:
        data = await self._post(query, variables)
        return data.get("dataStoreds") or []

    @staticmethod
    def _records(rows: List[dict]) -> List[StoredSealRecord]:
        records = []
        for row in rows:
            try:
                records.append(StoredSealRecord.model_validate(row))
            except ValueError as e:
                log.warning("Skipping indexer row with unexpected shape (%s): %s", row.get("id"), e)
        return records

    async def by_transaction_hash(self, tx_hash: str) -> List[StoredSealRecord]:
        return self._records(await self._rows(GET_SEAL_BY_TX_HASH, {"txHash": tx_hash}))

    async def by_sender(self, sender: str, first: int = 100, skip: int = 0) -> List[StoredSealRecord]:
        variables = {"userAddress": sender, "first": first, "skip": skip}
        return self._records(await self._rows(GET_USER_SEALS, variables))

    async def all_by_sender(self, sender: str, page_size: int = 100,
                            max_skip: int = MAX_SKIP) -> List[StoredSealRecord]:
        """
        Walk the pages for `sender`, newest first. The subgraph refuses
        `skip` beyond MAX_SKIP, so the walk stops there with what it has.
        """
        rows: List[dict] = []
        skip = 0
        while True:
            page = await self._rows(GET_USER_SEALS, {"userAddress": sender, "first": page_size, "skip": skip})
            rows.extend(page)
            if len(page) < page_size:
                break
            skip += page_size
            if skip > max_skip:
                log.warning("Seal listing for %s truncated at %d records", sender, len(rows))
                break
        return self._records(rows)

    async def recent(self, first: int = 100, skip: int = 0) -> List[StoredSealRecord]:
        return self._records(await self._rows(GET_ALL_SEALS, {"first": first, "skip": skip}))
