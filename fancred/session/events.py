"""Wallet events consumed by the session state machine."""

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, Union


@dataclass(frozen=True)
class RequestConnect:
    """The user asked to connect a wallet."""


@dataclass(frozen=True)
class ProviderConfirmed:
    """The wallet provider connected an account on a chain."""
    account_id: str
    chain_id: int


@dataclass(frozen=True)
class ProviderRejected:
    """The wallet provider refused or failed the connection."""
    reason: str = ""
    user_cancelled: bool = False


@dataclass(frozen=True)
class SwitchNetworkSucceeded:
    chain_id: int


@dataclass(frozen=True)
class SwitchNetworkFailed:
    reason: str = ""
    user_cancelled: bool = False


@dataclass(frozen=True)
class AccountChanged:
    """
    The active account changed in the wallet.

    chain_id is the new account's active chain when the provider reports
    it; None keeps the current chain.
    """
    account_id: str
    chain_id: Optional[int] = None


@dataclass(frozen=True)
class ChainChanged:
    chain_id: int


@dataclass(frozen=True)
class Disconnect:
    """The wallet disconnected."""


WalletEvent = Union[
    RequestConnect,
    ProviderConfirmed,
    ProviderRejected,
    SwitchNetworkSucceeded,
    SwitchNetworkFailed,
    AccountChanged,
    ChainChanged,
    Disconnect,
]


class WalletProvider(Protocol):
    """
    The wallet SDK as seen by the session.

    connect() raises ConnectionRejected when the user declines.
    """

    async def connect(self) -> tuple[str, int]:
        ...

    async def switch_chain(self, chain_id: int) -> None:
        ...

    async def disconnect(self) -> None:
        ...


_CLOSED = object()


class WalletEventChannel:
    """
    Queue of wallet events, iterated by SessionStateMachine.run().

    Producers publish events; close() ends iteration once the events
    already queued have been consumed.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def publish(self, event: WalletEvent) -> None:
        if self._closed:
            raise RuntimeError("WalletEventChannel is closed")
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[WalletEvent]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event
