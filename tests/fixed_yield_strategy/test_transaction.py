"""
Transaction Tests.

============================================================
PURPOSE
============================================================
Test serialisation, rollback and post-commit publishing.

============================================================
"""

import asyncio
from decimal import Decimal

import pytest

from fixed_yield_strategy import (
    ExecutionError,
    FixedYieldStrategy,
    MarketTokens,
    MockMarket,
    MockMarketConfig,
    StrategyEvent,
    StrategyEventType,
    StrategyTransaction,
    TokenLedger,
    round_down,
)

from conftest import (
    ALICE,
    ASSET,
    GOVERNANCE,
    KEEPER,
    MANAGEMENT,
    MATURITY,
    STRATEGY,
    T0,
    WRAPPER,
)


class Counter:
    """Minimal snapshotable participant."""

    def __init__(self):
        self.value = 0

    def snapshot(self):
        return self.value

    def restore(self, snapshot):
        self.value = snapshot


def make_event(n: int = 0) -> StrategyEvent:
    return StrategyEvent(
        event_type=StrategyEventType.TEND,
        strategy_address="s",
        market_address="m",
        timestamp=n,
    )


@pytest.fixture
def counter() -> Counter:
    return Counter()


@pytest.fixture
def txn_ledger() -> TokenLedger:
    return TokenLedger()


@pytest.fixture
def transaction(txn_ledger, counter) -> StrategyTransaction:
    return StrategyTransaction(txn_ledger, participants=[counter])


class TestAtomic:
    """Test commit and rollback."""

    @pytest.mark.asyncio
    async def test_commit_keeps_changes(self, transaction, txn_ledger, counter):
        """Test a clean exit keeps every change."""
        async with transaction.atomic("op"):
            txn_ledger.mint("t", "a", Decimal("5"))
            counter.value = 3

        assert txn_ledger.balance_of("t", "a") == Decimal("5")
        assert counter.value == 3

    @pytest.mark.asyncio
    async def test_error_restores_everything(self, transaction, txn_ledger, counter):
        """Test an exception restores ledger and participants."""
        txn_ledger.mint("t", "a", Decimal("5"))

        with pytest.raises(RuntimeError):
            async with transaction.atomic("op"):
                txn_ledger.transfer("t", "a", "b", Decimal("5"))
                counter.value = 9
                raise RuntimeError("boom")

        assert txn_ledger.balance_of("t", "a") == Decimal("5")
        assert txn_ledger.balance_of("t", "b") == 0
        assert counter.value == 0

    @pytest.mark.asyncio
    async def test_cancellation_restores(self, transaction, txn_ledger):
        """Test cancellation is rolled back like any failure."""
        with pytest.raises(asyncio.CancelledError):
            async with transaction.atomic("op"):
                txn_ledger.mint("t", "a", Decimal("1"))
                raise asyncio.CancelledError()

        assert txn_ledger.balance_of("t", "a") == 0
        assert not transaction.locked


class TestSerialisation:
    """Test one entry point at a time."""

    @pytest.mark.asyncio
    async def test_no_interleaving(self, transaction):
        """Test concurrent blocks run one after another."""
        trace = []

        async def op(name):
            async with transaction.atomic(name):
                trace.append(f"{name}:enter")
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                trace.append(f"{name}:exit")

        await asyncio.gather(op("a"), op("b"))

        assert trace == ["a:enter", "a:exit", "b:enter", "b:exit"]

    @pytest.mark.asyncio
    async def test_concurrent_strategy_calls(self, strategy, ledger):
        """Test a report issued during a tend sees the committed tend."""
        ledger.transfer(ASSET, ALICE, STRATEGY, Decimal("1000"))

        tend, report = await asyncio.gather(strategy.tend(KEEPER), strategy.harvest_and_report())

        assert tend.intermediary_swapped == Decimal("1000")
        assert report.idle_asset == 0
        assert report.total_assets == round_down(strategy.balance_of_principal() * Decimal("0.95"))

    @pytest.mark.asyncio
    async def test_views_during_tend_see_committed_state(self, ledger, clock, oracle, strategy_config):
        """Test views read mid-tend see pre-tend state and a failed tend leaves no trace."""
        slow_market = MockMarket(
            ledger,
            clock,
            address="slow-market",
            tokens=MarketTokens(wrapper=WRAPPER, principal="pt-slow", yield_token="yt-slow"),
            expiry=T0 + MATURITY,
            tokens_in=[ASSET, WRAPPER],
            config=MockMarketConfig(latency_seconds=0.02),
        )
        strategy = await FixedYieldStrategy.create(
            address=STRATEGY,
            asset=ASSET,
            market=slow_market,
            ledger=ledger,
            management=MANAGEMENT,
            governance=GOVERNANCE,
            keeper=KEEPER,
            oracle=oracle,
            config=strategy_config,
            clock=clock,
        )
        ledger.transfer(ASSET, ALICE, STRATEGY, Decimal("1000"))
        ledger.mint(WRAPPER, STRATEGY, Decimal("50"))
        oracle.set_rate(slow_market.address, Decimal("0.90"))

        tend = asyncio.create_task(strategy.tend(KEEPER))
        while ledger.balance_of(WRAPPER, STRATEGY) > 0 and not tend.done():
            await asyncio.sleep(0.005)

        assert not tend.done()
        assert strategy.balance_of_wrapper() == Decimal("50")
        assert strategy.balance_of_asset() == Decimal("1000")
        assert strategy.params.last_swap_timestamp == 0

        trigger = asyncio.create_task(strategy.should_tend())
        await asyncio.sleep(0)
        assert not trigger.done()

        with pytest.raises(ExecutionError) as exc_info:
            await tend
        assert exc_info.value.code == "EXE_SLIPPAGE_EXCEEDED"

        assert (await trigger).should_tend
        assert strategy.params.last_swap_timestamp == 0
        assert ledger.balance_of(WRAPPER, STRATEGY) == Decimal("50")
        assert ledger.balance_of(ASSET, STRATEGY) == Decimal("1000")


class TestPublishing:
    """Test post-commit event and alert delivery."""

    @pytest.mark.asyncio
    async def test_events_published_after_release(self, transaction):
        """Test listeners run after commit, outside the lock."""
        seen = []

        async def listener(event):
            seen.append((event.timestamp, transaction.locked))

        transaction.add_listener(listener)
        async with transaction.atomic("op") as scope:
            scope.emit(make_event(1))
            scope.emit(make_event(2))
            assert seen == []

        assert seen == [(1, False), (2, False)]

    @pytest.mark.asyncio
    async def test_failed_block_publishes_nothing(self, txn_ledger, counter):
        """Test rolled-back events and alerts are dropped."""
        seen, alerts = [], []

        async def on_alert(alert):
            alerts.append(alert)

        async def listener(event):
            seen.append(event)

        transaction = StrategyTransaction(txn_ledger, [counter], on_alert=on_alert)
        transaction.add_listener(listener)

        with pytest.raises(ValueError):
            async with transaction.atomic("op") as scope:
                scope.emit(make_event())
                scope.alert("queued")
                raise ValueError("nope")

        assert seen == []
        assert alerts == []

    @pytest.mark.asyncio
    async def test_listener_failure_keeps_commit(self, transaction, txn_ledger):
        """Test a failing listener neither raises nor rolls back."""
        delivered = []

        async def broken(event):
            raise RuntimeError("listener down")

        async def working(event):
            delivered.append(event)

        transaction.add_listener(broken)
        transaction.add_listener(working)

        async with transaction.atomic("op") as scope:
            txn_ledger.mint("t", "a", Decimal("1"))
            scope.emit(make_event())

        assert txn_ledger.balance_of("t", "a") == Decimal("1")
        assert len(delivered) == 1

    @pytest.mark.asyncio
    async def test_alerts_delivered_on_commit(self, txn_ledger, counter):
        """Test queued alerts go out after commit."""
        alerts = []

        async def on_alert(alert):
            alerts.append(alert)

        transaction = StrategyTransaction(txn_ledger, [counter], on_alert=on_alert)
        async with transaction.atomic("op") as scope:
            scope.alert("done")
            assert alerts == []

        assert alerts == ["done"]
