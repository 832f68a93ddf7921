"""
On-chain state lookup through solana-py with retries and endpoint failover.

- fetch(address): existence, lamports, owner and data of one account, plus
  the rent-exempt minimum for its data length.
- current_height(): one slot read per batch, reused for every account.
- Transient RPC failures are retried with exponential backoff, rotating to the
  next configured endpoint between attempts. When retries run out the fetcher
  returns a non-existent state carrying fetch_error. It never raises into the
  pipeline and never reports a failed lookup as an existing, empty account.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solders.pubkey import Pubkey

from rent_reclaim.core.exceptions import RpcUnavailableError
from rent_reclaim.core.models import ObservedAccountState
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SEC = 1.0
DEFAULT_RPC_TIMEOUT_SEC = 10.0


class StateFetcher:
    def __init__(
        self,
        rpc_urls: list[str] | str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_sec: float = DEFAULT_RETRY_DELAY_SEC,
        *,
        timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC,
        client_factory: Callable[[str], Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        urls = [rpc_urls] if isinstance(rpc_urls, str) else list(rpc_urls)
        if not urls:
            raise ValueError("At least one RPC endpoint required")
        self.endpoints = urls
        self.max_retries = max(1, int(max_retries))
        self.retry_delay_sec = max(0.0, float(retry_delay_sec))
        self._timeout_sec = timeout_sec
        self._client_factory = client_factory or self._default_client
        self._sleep = sleep
        self._clients: dict[str, Any] = {}
        self._index = 0
        self._failures: dict[str, int] = {u: 0 for u in urls}
        self._last_successful: str | None = None
        self._rent_cache: dict[int, int] = {}

    def _default_client(self, url: str) -> Client:
        return Client(url, commitment=Confirmed, timeout=self._timeout_sec)

    def _client(self) -> Any:
        url = self.endpoints[self._index]
        if url not in self._clients:
            self._clients[url] = self._client_factory(url)
        return self._clients[url]

    def client(self) -> Any:
        """Client for the currently active endpoint (shared with the submitter)."""
        return self._client()

    def _rotate(self) -> None:
        if len(self.endpoints) > 1:
            self._index = (self._index + 1) % len(self.endpoints)

    def call(self, method: str, fn: Callable[[Any], Any]) -> Any:
        """
        Run fn(client) with retry + failover. Raises RpcUnavailableError when
        every attempt failed.
        """
        last_error: BaseException | None = None
        for attempt in range(self.max_retries):
            url = self.endpoints[self._index]
            try:
                result = fn(self._client())
                self._failures[url] = 0
                self._last_successful = url
                return result
            except Exception as e:
                last_error = e
                self._failures[url] = self._failures.get(url, 0) + 1
                logger.warning(
                    "rpc_call_failed",
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    endpoint=url.split("?")[0],
                    error=str(e)[:200],
                )
                self._rotate()
                if attempt < self.max_retries - 1:
                    self._sleep(self.retry_delay_sec * (2 ** attempt))
        raise RpcUnavailableError(method, self.max_retries, last_error)

    def current_height(self) -> int | None:
        """Current slot, or None when the RPC is unreachable after retries."""
        try:
            slot = self.call("get_slot", lambda c: c.get_slot().value)
        except RpcUnavailableError as e:
            logger.error("current_height_unavailable", error=str(e))
            return None
        return int(slot)

    def rent_exempt_minimum(self, data_len: int) -> int:
        """Minimum rent-exempt balance for data_len bytes. 0 when unavailable."""
        if data_len in self._rent_cache:
            return self._rent_cache[data_len]
        try:
            value = int(
                self.call(
                    "get_minimum_balance_for_rent_exemption",
                    lambda c: c.get_minimum_balance_for_rent_exemption(data_len).value,
                )
            )
        except RpcUnavailableError as e:
            logger.warning("rent_exempt_minimum_unavailable", data_len=data_len, error=str(e))
            return 0
        self._rent_cache[data_len] = value
        return value

    def fetch(self, address: str) -> ObservedAccountState:
        try:
            pubkey = Pubkey.from_string(address)
        except ValueError:
            logger.warning("fetch_invalid_address", account=short_address(address))
            return ObservedAccountState.not_found(address, fetch_error="invalid address")
        try:
            account = self.call("get_account_info", lambda c: c.get_account_info(pubkey).value)
        except RpcUnavailableError as e:
            logger.error("fetch_failed", account=short_address(address), error=str(e))
            return ObservedAccountState.not_found(address, fetch_error=str(e))
        if account is None:
            logger.debug("account_not_found", account=short_address(address))
            return ObservedAccountState.not_found(address)
        data = bytes(account.data or b"")
        state = ObservedAccountState(
            address=address,
            exists=True,
            balance=int(account.lamports),
            owner=str(account.owner),
            data=data,
            rent_exempt_minimum=self.rent_exempt_minimum(len(data)),
        )
        logger.debug(
            "account_fetched",
            account=short_address(address),
            balance=state.balance,
            owner=short_address(state.owner),
            data_len=state.data_len,
        )
        return state

    def status(self) -> list[dict[str, Any]]:
        return [
            {
                "url": url.split("?")[0],
                "failures": self._failures.get(url, 0),
                "active": i == self._index,
                "last_successful": url == self._last_successful,
            }
            for i, url in enumerate(self.endpoints)
        ]
