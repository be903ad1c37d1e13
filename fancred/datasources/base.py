"""Abstract base class for holdings readers."""

from abc import ABC, abstractmethod

from fancred.models import Holdings


class HoldingsReader(ABC):
    """
    Abstract interface for reading a wallet's on-chain holdings.

    This abstraction allows swapping between the live Chiliz RPC reader,
    the demo reader and test fakes with no change to the services.
    """

    @abstractmethod
    async def read_holdings(self, account_id: str) -> Holdings:
        """
        Read NFT count and fan token balance for a wallet.

        Args:
            account_id: Wallet address (0x...)

        Returns:
            Holdings with nftsHeld and fungibleBalance

        Raises:
            InvalidAccount: The address is malformed
            LedgerUnavailable: The ledger could not be reached or
                returned an error
        """
        pass

    async def close(self) -> None:
        """
        Clean up resources (e.g., close HTTP sessions).

        Override this if the reader holds resources that need cleanup.
        """
        pass
