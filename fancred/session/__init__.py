from .events import (
    RequestConnect,
    ProviderConfirmed,
    ProviderRejected,
    SwitchNetworkSucceeded,
    SwitchNetworkFailed,
    AccountChanged,
    ChainChanged,
    Disconnect,
    WalletEvent,
    WalletEventChannel,
    WalletProvider,
)
from .generation import FanAnalysisRequest, GenerationService
from .machine import (
    ConnectionStatus,
    SessionPhase,
    SessionState,
    SessionNotice,
    ScoreFetcher,
    SessionStateMachine,
)

__all__ = [
    "RequestConnect",
    "ProviderConfirmed",
    "ProviderRejected",
    "SwitchNetworkSucceeded",
    "SwitchNetworkFailed",
    "AccountChanged",
    "ChainChanged",
    "Disconnect",
    "WalletEvent",
    "WalletEventChannel",
    "WalletProvider",
    "FanAnalysisRequest",
    "GenerationService",
    "ConnectionStatus",
    "SessionPhase",
    "SessionState",
    "SessionNotice",
    "ScoreFetcher",
    "SessionStateMachine",
]
