"""Session state machine for the wallet-connected dashboard.

Wallet connection status, network correctness and score refreshing are
driven by discrete wallet events (see events.py). The wallet SDK owns the
connection itself; this controller only reacts to what it reports.

Every score fetch carries a request token and every identity change
(disconnect, account switch, wrong network) bumps an epoch. A completion
whose token or epoch is stale is discarded, so a slow response for a
previous account can never overwrite the current one.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterable, Awaitable, Callable, Optional, Protocol

from fancred.errors import ConnectionRejected, FanCredError, GenerationFailure
from fancred.models import FanAction, ScoreActionResponse, ScoreBreakdown, ScoreResult
from fancred.services.score_engine import compute_fan_level
from .events import (
    AccountChanged,
    ChainChanged,
    Disconnect,
    ProviderConfirmed,
    ProviderRejected,
    RequestConnect,
    SwitchNetworkFailed,
    SwitchNetworkSucceeded,
    WalletEvent,
    WalletProvider,
)
from .generation import FanAnalysisRequest, GenerationService

logger = logging.getLogger(__name__)

DEFAULT_FANDOM_TRAITS = "Loves European football, collects vintage jerseys, travels for away matches."
NETWORK_NAME = "Chiliz Spicy Testnet"
MIN_ARTWORK_SCORE = 100
SUGGESTIONS_ERROR = "Failed to load suggestions. Please try again."
ANALYSIS_ERROR = "Failed to generate fan analysis. Please try again."


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SessionPhase(str, Enum):
    """Top-level state. Loading is a flag on SessionState, not a phase."""
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED_WRONG_NETWORK = "ConnectedWrongNetwork"
    CONNECTED_READY = "ConnectedReady"


@dataclass
class SessionState:
    """Everything the dashboard renders for the current wallet session."""
    account_id: Optional[str] = None
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    chain_id: Optional[int] = None
    is_on_correct_network: bool = False
    score_result: Optional[ScoreResult] = None
    is_loading_score: bool = False
    nfts_held: int = 0
    rituals_completed: int = 0
    chz_balance: float = 0.0
    fandom_traits: str = DEFAULT_FANDOM_TRAITS
    generated_badge_artwork: Optional[str] = None
    generated_quote: Optional[str] = None
    ai_suggestions: list[str] = field(default_factory=list)
    fan_analysis: Optional[str] = None
    is_loading_artwork: bool = False
    is_loading_quote: bool = False
    is_loading_suggestions: bool = False
    is_loading_analysis: bool = False

    @property
    def phase(self) -> SessionPhase:
        if self.connection_status == ConnectionStatus.CONNECTING:
            return SessionPhase.CONNECTING
        if self.connection_status == ConnectionStatus.CONNECTED:
            if self.is_on_correct_network:
                return SessionPhase.CONNECTED_READY
            return SessionPhase.CONNECTED_WRONG_NETWORK
        return SessionPhase.DISCONNECTED

    @property
    def is_connected(self) -> bool:
        return self.connection_status == ConnectionStatus.CONNECTED

    def clear_derived(self) -> None:
        """Drop score, counters and generated content for the session."""
        self.score_result = None
        self.is_loading_score = False
        self.nfts_held = 0
        self.rituals_completed = 0
        self.chz_balance = 0.0
        self.generated_badge_artwork = None
        self.generated_quote = None
        self.ai_suggestions = []
        self.fan_analysis = None
        self.is_loading_artwork = False
        self.is_loading_quote = False
        self.is_loading_suggestions = False
        self.is_loading_analysis = False


@dataclass(frozen=True)
class SessionNotice:
    """A user-visible message (rendered as a toast by the dashboard)."""
    title: str
    description: str = ""
    destructive: bool = False


class ScoreFetcher(Protocol):
    """Score API as seen by the session. ScoreApiClient implements it."""

    async def get_score(self, wallet_address: str) -> ScoreBreakdown:
        ...

    async def apply_action(self, wallet_address: str, action: FanAction) -> ScoreActionResponse:
        ...


class SessionStateMachine:
    """Controller for one dashboard session."""

    def __init__(
        self,
        fetcher: ScoreFetcher,
        target_chain_id: int,
        generator: Optional[GenerationService] = None,
        provider: Optional[WalletProvider] = None,
        score_timeout: Optional[float] = None,
        generation_timeout: Optional[float] = None,
        on_notice: Optional[Callable[[SessionNotice], None]] = None,
    ):
        self.fetcher = fetcher
        self.target_chain_id = target_chain_id
        self.generator = generator
        self.provider = provider
        self.score_timeout = score_timeout
        self.generation_timeout = generation_timeout
        self.on_notice = on_notice

        self.state = SessionState()
        self.notices: list[SessionNotice] = []
        self._fetch_token = 0
        self._epoch = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    def _notify(self, title: str, description: str = "", destructive: bool = False) -> None:
        notice = SessionNotice(title, description, destructive)
        self.notices.append(notice)
        if self.on_notice is not None:
            self.on_notice(notice)

    def _invalidate(self) -> None:
        self._fetch_token += 1
        self._epoch += 1

    def _reset(self) -> None:
        self._invalidate()
        self.state = SessionState(fandom_traits=self.state.fandom_traits)

    # Event handling

    def dispatch(self, event: WalletEvent) -> Optional[asyncio.Task]:
        """
        Apply one wallet event.

        Returns:
            The score refresh task the event scheduled, if any
        """
        logger.debug(f"Session event {event!r} in phase {self.phase.value}")

        if isinstance(event, RequestConnect):
            self._on_request_connect()
        elif isinstance(event, ProviderConfirmed):
            return self._on_provider_confirmed(event)
        elif isinstance(event, ProviderRejected):
            self._on_provider_rejected(event)
        elif isinstance(event, SwitchNetworkSucceeded):
            return self._on_switch_succeeded(event)
        elif isinstance(event, SwitchNetworkFailed):
            self._on_switch_failed(event)
        elif isinstance(event, AccountChanged):
            return self._on_account_changed(event)
        elif isinstance(event, ChainChanged):
            return self._on_chain_changed(event)
        elif isinstance(event, Disconnect):
            self._reset()
        else:
            raise TypeError(f"Unknown wallet event: {event!r}")
        return None

    async def run(self, source: AsyncIterable[WalletEvent]) -> None:
        """Dispatch events from a channel until it closes."""
        async for event in source:
            self.dispatch(event)

    def _on_request_connect(self) -> None:
        if self.phase == SessionPhase.CONNECTING:
            self._notify("Connection In Progress", "Please complete any pending wallet actions.")
            return
        if self.phase != SessionPhase.DISCONNECTED:
            logger.debug("Ignoring connect request, wallet already connected")
            return
        self.state.connection_status = ConnectionStatus.CONNECTING

    def _on_provider_confirmed(self, event: ProviderConfirmed) -> Optional[asyncio.Task]:
        if self.state.is_connected:
            return self._on_account_changed(AccountChanged(event.account_id, event.chain_id))

        # Also accepted from Disconnected: the wallet may restore a session on its own
        self._epoch += 1
        self.state.account_id = event.account_id
        self.state.connection_status = ConnectionStatus.CONNECTED
        logger.info(f"Wallet connected: {event.account_id} on chain {event.chain_id}")
        return self._evaluate_network(event.chain_id)

    def _on_provider_rejected(self, event: ProviderRejected) -> None:
        if self.phase != SessionPhase.CONNECTING:
            logger.debug("Ignoring provider rejection outside of Connecting")
            return
        self._reset()
        if event.user_cancelled:
            self._notify(
                "Connection Cancelled",
                "You cancelled the wallet connection request.",
                destructive=True,
            )
        else:
            self._notify(
                "Connection Failed",
                event.reason or "An unexpected error occurred.",
                destructive=True,
            )

    def _on_switch_succeeded(self, event: SwitchNetworkSucceeded) -> Optional[asyncio.Task]:
        if self.phase != SessionPhase.CONNECTED_WRONG_NETWORK:
            logger.debug("Ignoring network switch outside of ConnectedWrongNetwork")
            return None
        task = self._evaluate_network(event.chain_id)
        if self.state.is_on_correct_network:
            self._notify("Network Switched", f"Successfully switched to {NETWORK_NAME}.")
        return task

    def _on_switch_failed(self, event: SwitchNetworkFailed) -> None:
        if event.user_cancelled:
            self._notify(
                "Network Switch Cancelled",
                "You cancelled the network switch request.",
                destructive=True,
            )
        else:
            self._notify(
                "Network Switch Failed",
                "Could not switch to Chiliz Spicy. Please try from your wallet.",
                destructive=True,
            )

    def _on_account_changed(self, event: AccountChanged) -> Optional[asyncio.Task]:
        if not self.state.is_connected:
            logger.debug("Ignoring account change while not connected")
            return None
        self._invalidate()
        self.state.clear_derived()
        self.state.account_id = event.account_id
        chain_id = event.chain_id if event.chain_id is not None else self.state.chain_id
        logger.info(f"Active account changed to {event.account_id}")
        return self._evaluate_network(chain_id)

    def _on_chain_changed(self, event: ChainChanged) -> Optional[asyncio.Task]:
        if not self.state.is_connected:
            logger.debug("Ignoring chain change while not connected")
            return None
        if (
            self.phase == SessionPhase.CONNECTED_WRONG_NETWORK
            and event.chain_id != self.target_chain_id
        ):
            self.state.chain_id = event.chain_id
            return None
        return self._evaluate_network(event.chain_id)

    def _evaluate_network(self, chain_id: Optional[int]) -> Optional[asyncio.Task]:
        self.state.chain_id = chain_id
        if chain_id == self.target_chain_id:
            self.state.is_on_correct_network = True
            return self._schedule_refresh()

        self.state.is_on_correct_network = False
        self._invalidate()
        self.state.clear_derived()
        self._notify("Wrong Network", f"Please switch to {NETWORK_NAME}.", destructive=True)
        return None

    # Score fetching

    def _begin_fetch(self) -> tuple[str, int]:
        self._fetch_token += 1
        self.state.is_loading_score = True
        return self.state.account_id, self._fetch_token

    def _is_current(self, account_id: str, token: int) -> bool:
        return (
            token == self._fetch_token
            and self.state.account_id == account_id
            and self.phase == SessionPhase.CONNECTED_READY
        )

    def _apply_breakdown(self, breakdown: ScoreBreakdown) -> None:
        self.state.score_result = ScoreResult(
            score=breakdown.score,
            fanLevel=compute_fan_level(breakdown.score),
        )
        self.state.nfts_held = breakdown.nftsHeld
        self.state.rituals_completed = breakdown.ritualsCompleted
        self.state.chz_balance = breakdown.chzBalance
        self.state.is_loading_score = False

    def _apply_score_failure(self) -> None:
        self.state.score_result = ScoreResult.zero()
        self.state.nfts_held = 0
        self.state.rituals_completed = 0
        self.state.chz_balance = 0.0
        self.state.is_loading_score = False

    async def _run_fetch(self, account_id: str, token: int) -> Optional[ScoreResult]:
        try:
            breakdown = await asyncio.wait_for(
                self.fetcher.get_score(account_id), self.score_timeout
            )
        except (FanCredError, asyncio.TimeoutError) as e:
            if self._is_current(account_id, token):
                self._apply_score_failure()
                self._notify(
                    "Score Fetch Failed",
                    str(e) or "The score request timed out.",
                    destructive=True,
                )
            else:
                logger.debug(f"Ignoring failure of superseded score fetch for {account_id}")
            raise

        if not self._is_current(account_id, token):
            logger.info(f"Discarding stale score response for {account_id}")
            return None

        self._apply_breakdown(breakdown)
        return self.state.score_result

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Background score refresh failed: {task.exception()!r}")

    def _schedule_refresh(self) -> asyncio.Task:
        account_id, token = self._begin_fetch()
        task = asyncio.get_running_loop().create_task(self._run_fetch(account_id, token))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def refresh_score(self) -> Optional[ScoreResult]:
        """
        Re-fetch the score for the current account.

        Returns:
            The new ScoreResult, or None if not ready or the response was
            superseded before it arrived

        Raises:
            The fetch error, after the zero fallback has been applied
        """
        if self.phase != SessionPhase.CONNECTED_READY:
            return None
        account_id, token = self._begin_fetch()
        return await self._run_fetch(account_id, token)

    async def wait_idle(self) -> None:
        """Wait for all scheduled score refreshes to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def update_score_on_action(self, action: FanAction) -> Optional[ScoreResult]:
        """
        Post a fan action and apply the recomputed score.

        Raises:
            InvalidAction: Unknown action tag
            FanCredError: The score API failed
        """
        action = FanAction.parse(action)
        if self.phase != SessionPhase.CONNECTED_READY:
            self._notify("Action Failed", "Wallet not connected or on wrong network.", destructive=True)
            return None

        account_id, epoch = self.state.account_id, self._epoch
        self.state.is_loading_score = True
        try:
            response = await asyncio.wait_for(
                self.fetcher.apply_action(account_id, action), self.score_timeout
            )
        except (FanCredError, asyncio.TimeoutError) as e:
            if self._same_session(account_id, epoch):
                self.state.is_loading_score = False
                self._notify(
                    "Score Update Failed",
                    str(e) or "The score request timed out.",
                    destructive=True,
                )
            raise

        if not self._same_session(account_id, epoch):
            logger.info(f"Discarding action result for previous session of {account_id}")
            return None

        # Reads started before the action would carry older counters
        self._fetch_token += 1
        self._apply_breakdown(response)
        self._notify("Score Updated!", response.message)
        return self.state.score_result

    # AI generation

    def _same_session(self, account_id: Optional[str], epoch: int) -> bool:
        return (
            epoch == self._epoch
            and self.state.account_id == account_id
            and self.phase == SessionPhase.CONNECTED_READY
        )

    def _require_ready(self, failure_title: str) -> bool:
        if self.phase != SessionPhase.CONNECTED_READY:
            self._notify(failure_title, f"Connect to {NETWORK_NAME} first.", destructive=True)
            return False
        if self.generator is None:
            raise RuntimeError("No GenerationService configured")
        return True

    async def _run_generation(
        self,
        loading_attr: str,
        failure_title: str,
        failure_message: str,
        call: Awaitable,
    ):
        """
        Await a generation call, keeping its loading flag accurate.

        Returns None when the session changed while the call was in flight.
        """
        account_id, epoch = self.state.account_id, self._epoch
        setattr(self.state, loading_attr, True)
        try:
            result = await asyncio.wait_for(call, self.generation_timeout)
        except (GenerationFailure, asyncio.TimeoutError) as e:
            if self._same_session(account_id, epoch):
                setattr(self.state, loading_attr, False)
                self._notify(failure_title, failure_message, destructive=True)
            if isinstance(e, GenerationFailure):
                raise
            raise GenerationFailure(f"{failure_title}: request timed out") from e

        if not self._same_session(account_id, epoch):
            logger.info("Discarding generation result for a previous session")
            return None
        setattr(self.state, loading_attr, False)
        return result

    def set_fandom_traits(self, traits: str) -> None:
        self.state.fandom_traits = traits

    async def generate_badge_artwork(self) -> Optional[str]:
        """Generate badge artwork from the fandom traits. Needs a score of 100."""
        if not self._require_ready("Artwork Failed"):
            return None
        if not self.state.fandom_traits.strip():
            self._notify("Artwork Failed", "Please set your fandom traits first.", destructive=True)
            return None
        score = self.state.score_result.score if self.state.score_result else 0
        if score < MIN_ARTWORK_SCORE:
            self._notify(
                "Artwork Denied",
                f"Score too low. Need {MIN_ARTWORK_SCORE}, have {score}.",
                destructive=True,
            )
            return None

        self.state.generated_badge_artwork = None
        artwork = await self._run_generation(
            "is_loading_artwork",
            "Artwork Generation Failed",
            "Could not generate badge artwork. Please try again.",
            self.generator.generate_badge_artwork(self.state.fandom_traits),
        )
        if artwork is not None:
            self.state.generated_badge_artwork = artwork
            self._notify("Badge Artwork Generated!", "Your unique fan badge is ready.")
        return artwork

    async def generate_quote(self, fan_activity: str) -> Optional[str]:
        if not self._require_ready("Quote Failed"):
            return None
        if not fan_activity.strip():
            self._notify("Quote Failed", "Please describe your fan activity.", destructive=True)
            return None

        self.state.generated_quote = None
        quote = await self._run_generation(
            "is_loading_quote",
            "Quote Generation Failed",
            "Could not generate fan quote. Please try again.",
            self.generator.generate_fan_quote(fan_activity),
        )
        if quote is not None:
            self.state.generated_quote = quote
            self._notify("Fan Quote Generated!", "Your personalized fan quote is here.")
        return quote

    async def fetch_suggestions(self) -> Optional[list[str]]:
        if not self._require_ready("Suggestions Failed"):
            return None

        account_id, epoch = self.state.account_id, self._epoch
        score = self.state.score_result.score if self.state.score_result else 0
        self.state.ai_suggestions = []
        try:
            suggestions = await self._run_generation(
                "is_loading_suggestions",
                "Suggestion Fetch Failed",
                SUGGESTIONS_ERROR,
                self.generator.improve_score_suggestions(score, account_id),
            )
        except GenerationFailure:
            if self._same_session(account_id, epoch):
                self.state.ai_suggestions = [SUGGESTIONS_ERROR]
            raise
        if suggestions is not None:
            self.state.ai_suggestions = list(suggestions)
        return suggestions

    async def fetch_analysis(self) -> Optional[str]:
        if not self._require_ready("Analysis Failed"):
            return None
        if not self.state.fandom_traits.strip():
            # Analysis still runs, just with less to go on
            self._notify(
                "Analysis Failed",
                "Please define your fandom traits for a better analysis.",
                destructive=True,
            )

        account_id, epoch = self.state.account_id, self._epoch
        result = self.state.score_result or ScoreResult.zero()
        request = FanAnalysisRequest(
            superfan_score=result.score,
            fan_level=result.fanLevel,
            fandom_traits=self.state.fandom_traits,
            wallet_address=account_id,
            nfts_held=self.state.nfts_held,
            rituals_completed=self.state.rituals_completed,
        )
        self.state.fan_analysis = None
        try:
            analysis = await self._run_generation(
                "is_loading_analysis",
                "Analysis Failed",
                ANALYSIS_ERROR,
                self.generator.generate_fan_analysis(request),
            )
        except GenerationFailure:
            if self._same_session(account_id, epoch):
                self.state.fan_analysis = ANALYSIS_ERROR
            raise
        if analysis is not None:
            self.state.fan_analysis = analysis
        return analysis

    # Wallet provider actions

    def _require_provider(self) -> WalletProvider:
        if self.provider is None:
            raise RuntimeError("No WalletProvider configured")
        return self.provider

    async def connect_wallet(self) -> Optional[asyncio.Task]:
        """Ask the wallet to connect and feed the outcome back as events."""
        provider = self._require_provider()
        if self.phase != SessionPhase.DISCONNECTED:
            self.dispatch(RequestConnect())
            return None

        self.dispatch(RequestConnect())
        try:
            account_id, chain_id = await provider.connect()
        except ConnectionRejected as e:
            logger.info(f"Wallet connection rejected: {e}")
            self.dispatch(ProviderRejected(str(e), e.user_cancelled))
            return None
        return self.dispatch(ProviderConfirmed(account_id, chain_id))

    async def switch_to_correct_network(self) -> Optional[asyncio.Task]:
        provider = self._require_provider()
        if self.phase != SessionPhase.CONNECTED_WRONG_NETWORK:
            return None
        try:
            await provider.switch_chain(self.target_chain_id)
        except ConnectionRejected as e:
            return self.dispatch(SwitchNetworkFailed(str(e), e.user_cancelled))
        except FanCredError as e:
            logger.warning(f"Failed to switch network: {e}")
            return self.dispatch(SwitchNetworkFailed(str(e)))
        return self.dispatch(SwitchNetworkSucceeded(self.target_chain_id))

    async def disconnect_wallet(self) -> None:
        provider = self._require_provider()
        await provider.disconnect()
        self.dispatch(Disconnect())
        self._notify("Wallet Disconnected")
