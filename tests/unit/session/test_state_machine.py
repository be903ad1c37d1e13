"""
Unit tests for the session state machine
"""

import asyncio

import pytest

from fancred.errors import ConnectionRejected, GenerationFailure, InvalidAction, ScoreApiError
from fancred.models import FanAction, FanLevel, ScoreResult
from fancred.session import (
    AccountChanged,
    ChainChanged,
    ConnectionStatus,
    Disconnect,
    ProviderConfirmed,
    ProviderRejected,
    RequestConnect,
    SessionPhase,
    SessionStateMachine,
    SwitchNetworkFailed,
    SwitchNetworkSucceeded,
    WalletEventChannel,
)
from fancred.session.machine import SUGGESTIONS_ERROR
from tests.fakes import OTHER_CHAIN_ID, TARGET_CHAIN_ID, WALLET_A, WALLET_B


def make_machine(fetcher, **kwargs) -> SessionStateMachine:
    return SessionStateMachine(fetcher, target_chain_id=TARGET_CHAIN_ID, **kwargs)


async def connect_ready(machine, account=WALLET_A):
    machine.dispatch(RequestConnect())
    task = machine.dispatch(ProviderConfirmed(account, TARGET_CHAIN_ID))
    await task
    return machine


def titles(machine) -> list[str]:
    return [n.title for n in machine.notices]


class TestConnectionLifecycle:
    """Test suite for connection and network transitions."""

    @pytest.mark.asyncio
    async def test_initial_state(self, fetcher):
        machine = make_machine(fetcher)

        assert machine.phase == SessionPhase.DISCONNECTED
        assert machine.state.account_id is None
        assert machine.state.score_result is None

    @pytest.mark.asyncio
    async def test_connect_on_target_chain_fetches_score(self, fetcher):
        fetcher.scores[WALLET_A] = 450
        machine = make_machine(fetcher)

        machine.dispatch(RequestConnect())
        assert machine.phase == SessionPhase.CONNECTING

        task = machine.dispatch(ProviderConfirmed(WALLET_A, TARGET_CHAIN_ID))
        assert machine.phase == SessionPhase.CONNECTED_READY
        assert machine.state.is_loading_score is True

        result = await task
        assert result == ScoreResult(score=450, fanLevel=FanLevel.PRO)
        assert machine.state.score_result == result
        assert machine.state.is_loading_score is False
        assert machine.state.nfts_held == 9

    @pytest.mark.asyncio
    async def test_connect_on_wrong_chain(self, fetcher):
        machine = make_machine(fetcher)

        machine.dispatch(RequestConnect())
        task = machine.dispatch(ProviderConfirmed(WALLET_A, OTHER_CHAIN_ID))

        assert task is None
        assert machine.phase == SessionPhase.CONNECTED_WRONG_NETWORK
        assert machine.state.is_on_correct_network is False
        assert fetcher.calls == []
        assert "Wrong Network" in titles(machine)

    @pytest.mark.asyncio
    async def test_notices_delivered_to_callback(self, fetcher):
        received = []
        machine = make_machine(fetcher, on_notice=received.append)

        machine.dispatch(RequestConnect())
        machine.dispatch(ProviderConfirmed(WALLET_A, OTHER_CHAIN_ID))

        assert received == machine.notices
        assert received[0].destructive is True

    @pytest.mark.asyncio
    async def test_duplicate_connect_request_notifies(self, fetcher):
        machine = make_machine(fetcher)

        machine.dispatch(RequestConnect())
        machine.dispatch(RequestConnect())

        assert machine.phase == SessionPhase.CONNECTING
        assert titles(machine) == ["Connection In Progress"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "cancelled,title",
        [(True, "Connection Cancelled"), (False, "Connection Failed")],
    )
    async def test_provider_rejection_returns_to_disconnected(self, fetcher, cancelled, title):
        machine = make_machine(fetcher)

        machine.dispatch(RequestConnect())
        machine.dispatch(ProviderRejected("MetaMask not available", user_cancelled=cancelled))

        assert machine.phase == SessionPhase.DISCONNECTED
        assert titles(machine) == [title]

    @pytest.mark.asyncio
    async def test_switch_network_success_fetches_score(self, fetcher):
        fetcher.scores[WALLET_A] = 100
        machine = make_machine(fetcher)
        machine.dispatch(RequestConnect())
        machine.dispatch(ProviderConfirmed(WALLET_A, OTHER_CHAIN_ID))

        task = machine.dispatch(SwitchNetworkSucceeded(TARGET_CHAIN_ID))
        await task

        assert machine.phase == SessionPhase.CONNECTED_READY
        assert machine.state.score_result.score == 100
        assert "Network Switched" in titles(machine)

    @pytest.mark.asyncio
    async def test_switch_network_failure_keeps_state(self, fetcher):
        machine = make_machine(fetcher)
        machine.dispatch(RequestConnect())
        machine.dispatch(ProviderConfirmed(WALLET_A, OTHER_CHAIN_ID))

        machine.dispatch(SwitchNetworkFailed("rejected", user_cancelled=True))

        assert machine.phase == SessionPhase.CONNECTED_WRONG_NETWORK
        assert titles(machine)[-1] == "Network Switch Cancelled"

    @pytest.mark.asyncio
    async def test_chain_change_to_wrong_network_clears_score(self, fetcher):
        fetcher.scores[WALLET_A] = 500
        machine = await connect_ready(make_machine(fetcher))

        task = machine.dispatch(ChainChanged(OTHER_CHAIN_ID))

        assert task is None
        assert machine.phase == SessionPhase.CONNECTED_WRONG_NETWORK
        assert machine.state.score_result is None
        assert machine.state.account_id == WALLET_A

    @pytest.mark.asyncio
    async def test_chain_change_to_target_refreshes(self, fetcher):
        machine = await connect_ready(make_machine(fetcher))

        task = machine.dispatch(ChainChanged(TARGET_CHAIN_ID))
        await task

        assert machine.phase == SessionPhase.CONNECTED_READY
        assert fetcher.calls == [WALLET_A, WALLET_A]

    @pytest.mark.asyncio
    async def test_account_change_refetches_for_new_account(self, fetcher):
        fetcher.scores.update({WALLET_A: 100, WALLET_B: 800})
        machine = await connect_ready(make_machine(fetcher))

        await machine.dispatch(AccountChanged(WALLET_B))

        assert machine.state.account_id == WALLET_B
        assert machine.state.score_result == ScoreResult(score=800, fanLevel=FanLevel.LEGEND)

    @pytest.mark.asyncio
    async def test_account_change_onto_wrong_chain(self, fetcher):
        machine = await connect_ready(make_machine(fetcher))

        task = machine.dispatch(AccountChanged(WALLET_B, chain_id=OTHER_CHAIN_ID))

        assert task is None
        assert machine.phase == SessionPhase.CONNECTED_WRONG_NETWORK
        assert machine.state.account_id == WALLET_B

    @pytest.mark.asyncio
    async def test_events_ignored_while_disconnected(self, fetcher):
        machine = make_machine(fetcher)

        assert machine.dispatch(AccountChanged(WALLET_B)) is None
        assert machine.dispatch(ChainChanged(TARGET_CHAIN_ID)) is None
        assert machine.phase == SessionPhase.DISCONNECTED


class TestDisconnect:
    """A disconnect from any state yields an empty Disconnected session."""

    async def _disconnected(self, machine):
        return machine

    async def _connecting(self, machine):
        machine.dispatch(RequestConnect())
        return machine

    async def _wrong_network(self, machine):
        machine.dispatch(RequestConnect())
        machine.dispatch(ProviderConfirmed(WALLET_A, OTHER_CHAIN_ID))
        return machine

    async def _ready(self, machine):
        return await connect_ready(machine)

    async def _loading(self, machine):
        machine.fetcher.hold(WALLET_A)
        machine.dispatch(RequestConnect())
        machine.dispatch(ProviderConfirmed(WALLET_A, TARGET_CHAIN_ID))
        return machine

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "setup", ["_disconnected", "_connecting", "_wrong_network", "_ready", "_loading"]
    )
    async def test_disconnect_from_any_state(self, fetcher, setup):
        fetcher.scores[WALLET_A] = 600
        machine = await getattr(self, setup)(make_machine(fetcher))

        machine.dispatch(Disconnect())

        assert machine.state.connection_status == ConnectionStatus.DISCONNECTED
        assert machine.state.account_id is None
        assert machine.state.score_result is None
        assert machine.state.is_loading_score is False

        # Let any held fetch complete; it must not resurrect the session
        for gate in fetcher.gates.values():
            gate.set()
        await machine.wait_idle()
        assert machine.state.score_result is None

    @pytest.mark.asyncio
    async def test_disconnect_keeps_fandom_traits(self, fetcher):
        machine = await connect_ready(make_machine(fetcher))
        machine.set_fandom_traits("Season ticket holder")

        machine.dispatch(Disconnect())

        assert machine.state.fandom_traits == "Season ticket holder"


class TestScoreFetching:
    """Test suite for race protection and fetch failures."""

    @pytest.mark.asyncio
    async def test_stale_response_for_previous_account_is_discarded(self, fetcher):
        fetcher.scores.update({WALLET_A: 200, WALLET_B: 900})
        gate_a = fetcher.hold(WALLET_A)
        machine = make_machine(fetcher)

        machine.dispatch(RequestConnect())
        task_a = machine.dispatch(ProviderConfirmed(WALLET_A, TARGET_CHAIN_ID))
        task_b = machine.dispatch(AccountChanged(WALLET_B))

        assert await task_b == ScoreResult(score=900, fanLevel=FanLevel.LEGEND)

        gate_a.set()
        assert await task_a is None

        assert machine.state.account_id == WALLET_B
        assert machine.state.score_result.score == 900
        assert machine.state.is_loading_score is False

    @pytest.mark.asyncio
    async def test_superseded_refresh_for_same_account_is_discarded(self, fetcher):
        fetcher.scores[WALLET_A] = 100
        machine = await connect_ready(make_machine(fetcher))

        gate = fetcher.hold(WALLET_A)
        first = asyncio.ensure_future(machine.refresh_score())
        await asyncio.sleep(0)
        fetcher.scores[WALLET_A] = 300
        fetcher.gates.pop(WALLET_A)
        second = await machine.refresh_score()
        gate.set()

        assert await first is None
        assert second.score == 300
        assert machine.state.score_result.score == 300

    @pytest.mark.asyncio
    async def test_fetch_failure_falls_back_to_rookie(self, fetcher):
        fetcher.failing.add(WALLET_A)
        machine = make_machine(fetcher)
        machine.dispatch(RequestConnect())
        task = machine.dispatch(ProviderConfirmed(WALLET_A, TARGET_CHAIN_ID))

        with pytest.raises(ScoreApiError):
            await task

        assert machine.state.score_result == ScoreResult.zero()
        assert machine.state.is_loading_score is False
        assert "Score Fetch Failed" in titles(machine)

    @pytest.mark.asyncio
    async def test_fetch_timeout_falls_back_to_rookie(self, fetcher):
        fetcher.hold(WALLET_A)
        machine = make_machine(fetcher, score_timeout=0.05)
        machine.dispatch(RequestConnect())
        task = machine.dispatch(ProviderConfirmed(WALLET_A, TARGET_CHAIN_ID))

        with pytest.raises(asyncio.TimeoutError):
            await task

        assert machine.state.score_result == ScoreResult.zero()
        assert machine.state.is_loading_score is False

    @pytest.mark.asyncio
    async def test_refresh_score_raises_to_caller(self, fetcher):
        machine = await connect_ready(make_machine(fetcher))
        fetcher.failing.add(WALLET_A)

        with pytest.raises(ScoreApiError):
            await machine.refresh_score()

    @pytest.mark.asyncio
    async def test_refresh_when_not_ready_is_noop(self, fetcher):
        machine = make_machine(fetcher)
        assert await machine.refresh_score() is None
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_run_consumes_event_channel(self, fetcher):
        fetcher.scores[WALLET_B] = 350
        machine = make_machine(fetcher)
        channel = WalletEventChannel()

        channel.publish(RequestConnect())
        channel.publish(ProviderConfirmed(WALLET_A, TARGET_CHAIN_ID))
        channel.publish(AccountChanged(WALLET_B))
        channel.close()
        await machine.run(channel)
        await machine.wait_idle()

        assert machine.state.account_id == WALLET_B
        assert machine.state.score_result.score == 350


class TestScoreActions:
    """Test suite for update_score_on_action."""

    @pytest.mark.asyncio
    async def test_action_applies_new_score(self, fetcher):
        machine = await connect_ready(make_machine(fetcher))

        result = await machine.update_score_on_action(FanAction.COMPLETE_RITUAL)

        assert result.score == 20
        assert machine.state.rituals_completed == 1
        assert machine.state.is_loading_score is False
        assert titles(machine)[-1] == "Score Updated!"

    @pytest.mark.asyncio
    async def test_action_requires_ready_session(self, fetcher):
        machine = make_machine(fetcher)

        assert await machine.update_score_on_action("complete_ritual") is None
        assert fetcher.actions == []
        assert titles(machine) == ["Action Failed"]

    @pytest.mark.asyncio
    async def test_unknown_action_rejected(self, fetcher):
        machine = await connect_ready(make_machine(fetcher))
        with pytest.raises(InvalidAction):
            await machine.update_score_on_action("dance")

    @pytest.mark.asyncio
    async def test_action_failure_keeps_previous_score(self, fetcher):
        fetcher.scores[WALLET_A] = 250
        machine = await connect_ready(make_machine(fetcher))
        fetcher.failing.add(WALLET_A)

        with pytest.raises(ScoreApiError):
            await machine.update_score_on_action(FanAction.ACQUIRE_NFT)

        assert machine.state.score_result.score == 250
        assert machine.state.is_loading_score is False
        assert titles(machine)[-1] == "Score Update Failed"


class TestGeneration:
    """Test suite for gated AI generation calls."""

    @pytest.mark.asyncio
    async def test_artwork_requires_minimum_score(self, fetcher, generator):
        fetcher.scores[WALLET_A] = 50
        machine = await connect_ready(make_machine(fetcher, generator=generator))

        assert await machine.generate_badge_artwork() is None
        assert generator.calls == []
        assert titles(machine)[-1] == "Artwork Denied"

    @pytest.mark.asyncio
    async def test_artwork_generated(self, fetcher, generator):
        fetcher.scores[WALLET_A] = 150
        machine = await connect_ready(make_machine(fetcher, generator=generator))

        artwork = await machine.generate_badge_artwork()

        assert artwork.startswith("data:image/png")
        assert machine.state.generated_badge_artwork == artwork
        assert machine.state.is_loading_artwork is False

    @pytest.mark.asyncio
    async def test_generation_requires_ready_session(self, fetcher, generator):
        machine = make_machine(fetcher, generator=generator)

        assert await machine.generate_quote("Sang all match") is None
        assert titles(machine) == ["Quote Failed"]

    @pytest.mark.asyncio
    async def test_blank_quote_activity_rejected(self, fetcher, generator):
        machine = await connect_ready(make_machine(fetcher, generator=generator))

        assert await machine.generate_quote("   ") is None
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_result_discarded_after_disconnect(self, fetcher, generator):
        fetcher.scores[WALLET_A] = 150
        machine = await connect_ready(make_machine(fetcher, generator=generator))
        generator.gate = asyncio.Event()

        pending = asyncio.ensure_future(machine.generate_quote("Travelled to every away game"))
        await asyncio.sleep(0)
        machine.dispatch(Disconnect())
        generator.gate.set()

        assert await pending is None
        assert machine.state.generated_quote is None

    @pytest.mark.asyncio
    async def test_generation_failure_surfaced(self, fetcher, generator):
        machine = await connect_ready(make_machine(fetcher, generator=generator))
        generator.fail = True

        with pytest.raises(GenerationFailure):
            await machine.fetch_suggestions()

        assert machine.state.ai_suggestions == [SUGGESTIONS_ERROR]
        assert machine.state.is_loading_suggestions is False
        assert titles(machine)[-1] == "Suggestion Fetch Failed"

    @pytest.mark.asyncio
    async def test_generation_timeout_is_failure(self, fetcher, generator):
        machine = await connect_ready(make_machine(fetcher, generator=generator, generation_timeout=0.05))
        generator.gate = asyncio.Event()

        with pytest.raises(GenerationFailure):
            await machine.fetch_analysis()

        assert machine.state.is_loading_analysis is False

    @pytest.mark.asyncio
    async def test_analysis_uses_session_data(self, fetcher, generator):
        fetcher.scores[WALLET_A] = 750
        machine = await connect_ready(make_machine(fetcher, generator=generator))

        analysis = await machine.fetch_analysis()

        assert analysis == "A Legend with a score of 750."
        assert machine.state.fan_analysis == analysis


class TestWalletProviderActions:
    """Test suite for the provider-driven helpers."""

    @pytest.mark.asyncio
    async def test_connect_wallet(self, fetcher, provider):
        machine = make_machine(fetcher, provider=provider)

        task = await machine.connect_wallet()
        await task

        assert machine.phase == SessionPhase.CONNECTED_READY
        assert machine.state.account_id == WALLET_A

    @pytest.mark.asyncio
    async def test_connect_wallet_rejected(self, fetcher, provider):
        provider.connect_error = ConnectionRejected("User rejected the request", user_cancelled=True)
        machine = make_machine(fetcher, provider=provider)

        assert await machine.connect_wallet() is None

        assert machine.phase == SessionPhase.DISCONNECTED
        assert titles(machine) == ["Connection Cancelled"]

    @pytest.mark.asyncio
    async def test_switch_to_correct_network(self, fetcher, provider):
        provider.chain_id = OTHER_CHAIN_ID
        machine = make_machine(fetcher, provider=provider)
        await machine.connect_wallet()
        assert machine.phase == SessionPhase.CONNECTED_WRONG_NETWORK

        task = await machine.switch_to_correct_network()
        await task

        assert machine.phase == SessionPhase.CONNECTED_READY
        assert provider.chain_id == TARGET_CHAIN_ID

    @pytest.mark.asyncio
    async def test_disconnect_wallet(self, fetcher, provider):
        machine = make_machine(fetcher, provider=provider)
        await (await machine.connect_wallet())

        await machine.disconnect_wallet()

        assert provider.disconnected is True
        assert machine.phase == SessionPhase.DISCONNECTED
        assert titles(machine)[-1] == "Wallet Disconnected"
