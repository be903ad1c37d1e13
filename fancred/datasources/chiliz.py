"""Chiliz JSON-RPC holdings reader implementation."""

import asyncio
import itertools
import logging
import re
from decimal import Decimal
from typing import Optional

import httpx

from fancred.errors import InvalidAccount, LedgerUnavailable
from fancred.models import Holdings
from .base import HoldingsReader

logger = logging.getLogger(__name__)

# API constants
SPICY_RPC_URL = "https://spicy-rpc.chiliz.com"
BALANCE_OF_SELECTOR = "0x70a08231"
REQUEST_TIMEOUT = 10.0
MAX_RETRIES = 3
RETRY_DELAY = 1.0

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def validate_address(account_id: str) -> str:
    """Return the address unchanged, or raise InvalidAccount if malformed."""
    if not account_id or not ADDRESS_PATTERN.match(account_id):
        raise InvalidAccount(f"Invalid wallet address: {account_id!r}")
    return account_id


def encode_balance_of(account_id: str) -> str:
    """ABI-encode a balanceOf(address) call."""
    return BALANCE_OF_SELECTOR + account_id[2:].lower().rjust(64, "0")


class ChilizHoldingsReader(HoldingsReader):
    """
    Holdings reader backed by eth_call against a Chiliz RPC node.

    Both the fan NFT collection (ERC-721) and the fan token (ERC-20) expose
    balanceOf(address), so a single call shape covers both reads.
    """

    def __init__(
        self,
        nft_contract: str,
        token_contract: str,
        rpc_url: str = SPICY_RPC_URL,
        token_decimals: int = 18,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Chiliz reader.

        Args:
            nft_contract: Address of the fan NFT collection
            token_contract: Address of the fan token
            rpc_url: JSON-RPC endpoint
            token_decimals: Decimals of the fan token
            timeout: Per-request timeout in seconds
            max_retries: Retries on timeout or rate limiting
            retry_delay: Seconds to wait between retries
            transport: Optional httpx transport (used by tests)
        """
        self.nft_contract = nft_contract
        self.token_contract = token_contract
        self.rpc_url = rpc_url
        self.token_decimals = token_decimals
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.rpc_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _rpc(self, method: str, params: list, retry_count: int = 0):
        """
        Make a JSON-RPC call with timeout handling and retries.

        Returns:
            The "result" member of the response
        """
        client = await self._get_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            response = await client.post("", json=payload)
            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException as e:
            if retry_count < self.max_retries:
                logger.warning(
                    f"RPC {method} timed out (attempt {retry_count + 1}/{self.max_retries}). "
                    f"Retrying in {self.retry_delay}s..."
                )
                await asyncio.sleep(self.retry_delay)
                return await self._rpc(method, params, retry_count + 1)
            logger.error(f"RPC {method} failed after {self.max_retries} retries: {e}")
            raise LedgerUnavailable(f"Ledger request timed out: {method}") from e

        except httpx.HTTPStatusError as e:
            # Handle rate limiting (429 Too Many Requests)
            if e.response.status_code == 429 and retry_count < self.max_retries:
                logger.warning(
                    f"Rate limited (429) on {method} (attempt {retry_count + 1}/{self.max_retries}). "
                    f"Retrying in {self.retry_delay}s..."
                )
                await asyncio.sleep(self.retry_delay)
                return await self._rpc(method, params, retry_count + 1)

            logger.error(f"HTTP error {e.response.status_code} for {method}: {e}")
            raise LedgerUnavailable(
                f"Ledger returned HTTP {e.response.status_code}"
            ) from e

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Unexpected error for {method}: {e}")
            raise LedgerUnavailable(f"Ledger request failed: {method}") from e

        if "error" in data:
            error = data["error"] or {}
            logger.error(f"RPC error for {method}: {error}")
            raise LedgerUnavailable(error.get("message", "RPC error"))

        return data.get("result")

    async def _balance_of(self, contract: str, account_id: str) -> int:
        """Call balanceOf(account_id) on a contract and decode the uint256."""
        result = await self._rpc(
            "eth_call",
            [{"to": contract, "data": encode_balance_of(account_id)}, "latest"],
        )
        # Non-contract addresses answer "0x"
        if not result or result == "0x":
            return 0
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise LedgerUnavailable(f"Unexpected balanceOf result: {result!r}") from e

    async def read_holdings(self, account_id: str) -> Holdings:
        """Read NFT count and fan token balance for a wallet."""
        validate_address(account_id)

        nfts_raw, balance_raw = await asyncio.gather(
            self._balance_of(self.nft_contract, account_id),
            self._balance_of(self.token_contract, account_id),
        )

        balance = Decimal(balance_raw).scaleb(-self.token_decimals)
        logger.debug(f"Holdings for {account_id}: nfts={nfts_raw} balance={balance}")

        return Holdings(nftsHeld=nfts_raw, fungibleBalance=balance)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
