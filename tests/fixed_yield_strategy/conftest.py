"""
Fixed Yield Strategy Test Fixtures.

============================================================
PURPOSE
============================================================
Shared fixtures and a minimal accounting layer.

FIXTURES:
- clock, ledger: Deterministic time and token storage
- market, successor_market: Mock markets on the same wrapper
- oracle: Mock oracle tracking both markets
- strategy: Strategy bound to market, no accounting layer
- vault: VaultHarness accounting layer attached to strategy
- share_strategy: Strategy using a share-vault intermediary

============================================================
"""

from decimal import Decimal
from typing import Dict, List, Tuple

import pytest

from fixed_yield_strategy import (
    MAX_BPS,
    round_down,
    AccessConfig,
    AccountingView,
    FixedYieldStrategy,
    MarketTokens,
    MockClock,
    MockMarket,
    MockOracle,
    MockShareVault,
    ShareTokenConverter,
    StrategyConfig,
    SwapConfig,
    TokenLedger,
)


T0 = 1_700_000_000
DAY = 86_400
MATURITY = 90 * DAY

ASSET = "asset"
WRAPPER = "sy"
STRATEGY = "strategy"
MANAGEMENT = "management"
KEEPER = "keeper"
GOVERNANCE = "governance"
EMERGENCY = "emergency"
ALICE = "alice"
BOB = "bob"


# ============================================================
# ACCOUNTING HARNESS
# ============================================================

class VaultHarness(AccountingView):
    """
    Minimal share-accounting layer.

    Shares are minted against recorded total assets. Report
    profit is locked and released linearly over
    profit_unlock_seconds.
    """

    def __init__(
        self,
        strategy: FixedYieldStrategy,
        ledger: TokenLedger,
        clock: MockClock,
        profit_unlock_seconds: int = 7 * DAY,
    ):
        self.strategy = strategy
        self.ledger = ledger
        self.clock = clock
        self.profit_unlock_seconds = profit_unlock_seconds

        self.shares: Dict[str, Decimal] = {}
        self.total_shares = Decimal("0")
        self.recorded_assets = Decimal("0")
        self.locked_profit = Decimal("0")
        self.unlock_end = 0
        self.shutdown_flag = False

    async def is_shutdown(self) -> bool:
        return self.shutdown_flag

    async def total_assets(self) -> Decimal:
        return self.recorded_assets

    def shutdown(self) -> None:
        self.shutdown_flag = True

    def currently_locked(self) -> Decimal:
        remaining = max(0, self.unlock_end - self.clock.now())
        return round_down(self.locked_profit * remaining / self.profit_unlock_seconds)

    def convert_to_assets(self, shares: Decimal) -> Decimal:
        if self.total_shares == 0:
            return shares
        free = self.recorded_assets - self.currently_locked()
        return round_down(shares * free / self.total_shares)

    def balance_of(self, owner: str) -> Decimal:
        return self.shares.get(owner, Decimal("0"))

    async def deposit(self, owner: str, amount: Decimal) -> Decimal:
        limit = await self.strategy.available_deposit_limit(owner)
        if amount > limit:
            raise ValueError(f"deposit of {amount} exceeds limit {limit}")

        if self.total_shares == 0:
            minted = amount
        else:
            free = self.recorded_assets - self.currently_locked()
            minted = round_down(amount * self.total_shares / free)

        self.ledger.transfer(ASSET, owner, self.strategy.address, amount)
        self.shares[owner] = self.balance_of(owner) + minted
        self.total_shares += minted
        self.recorded_assets += amount
        await self.strategy.deploy_funds(amount)
        return minted

    async def redeem(self, owner: str, shares: Decimal, max_loss_bps: int = 1) -> Tuple[Decimal, Decimal]:
        """Returns (assets paid, loss)."""
        owed = self.convert_to_assets(shares)
        limit = await self.strategy.available_withdraw_limit(owner)
        if owed > limit:
            raise ValueError(f"withdrawal of {owed} exceeds limit {limit}")

        idle = self.strategy.balance_of_asset()
        if owed > idle:
            await self.strategy.free_funds(owed - idle)
            idle = self.strategy.balance_of_asset()

        paid = min(owed, idle)
        loss = owed - paid
        if loss > owed * max_loss_bps / MAX_BPS:
            raise ValueError(f"loss {loss} exceeds max_loss")

        self.ledger.transfer(ASSET, self.strategy.address, owner, paid)
        self.shares[owner] = self.balance_of(owner) - shares
        self.total_shares -= shares
        self.recorded_assets -= owed
        return paid, loss

    async def report(self) -> Tuple[Decimal, Decimal]:
        """Returns (profit, loss)."""
        result = await self.strategy.harvest_and_report()
        profit = max(Decimal("0"), result.total_assets - self.recorded_assets)
        loss = max(Decimal("0"), self.recorded_assets - result.total_assets)

        if profit > 0:
            self.locked_profit = self.currently_locked() + profit
            self.unlock_end = self.clock.now() + self.profit_unlock_seconds
        self.recorded_assets = result.total_assets
        return profit, loss


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock() -> MockClock:
    return MockClock(T0)


@pytest.fixture
def ledger() -> TokenLedger:
    ledger = TokenLedger()
    ledger.mint(ASSET, ALICE, Decimal("10000"))
    ledger.mint(ASSET, BOB, Decimal("10000"))
    return ledger


@pytest.fixture
def market(ledger, clock) -> MockMarket:
    return MockMarket(
        ledger,
        clock,
        address="market-1",
        tokens=MarketTokens(wrapper=WRAPPER, principal="pt-1", yield_token="yt-1"),
        expiry=T0 + MATURITY,
        tokens_in=[ASSET, WRAPPER],
    )


@pytest.fixture
def successor_market(ledger, clock) -> MockMarket:
    return MockMarket(
        ledger,
        clock,
        address="market-2",
        tokens=MarketTokens(wrapper=WRAPPER, principal="pt-2", yield_token="yt-2"),
        expiry=T0 + 2 * MATURITY,
        tokens_in=[ASSET, WRAPPER],
    )


@pytest.fixture
def oracle(market, successor_market) -> MockOracle:
    oracle = MockOracle()
    oracle.link_market(market)
    oracle.link_market(successor_market)
    return oracle


@pytest.fixture
def alerts() -> List:
    return []


@pytest.fixture
def events() -> List:
    return []


@pytest.fixture
def strategy_config() -> StrategyConfig:
    return StrategyConfig(
        swap=SwapConfig(swap_slippage_bps=100),
        access=AccessConfig(open_deposits=True, open_withdrawals=True),
    )


@pytest.fixture
async def strategy(ledger, clock, market, oracle, strategy_config, alerts, events) -> FixedYieldStrategy:
    async def on_alert(alert):
        alerts.append(alert)

    async def on_event(event):
        events.append(event)

    return await FixedYieldStrategy.create(
        address=STRATEGY,
        asset=ASSET,
        market=market,
        ledger=ledger,
        management=MANAGEMENT,
        governance=GOVERNANCE,
        keeper=KEEPER,
        emergency_admin=EMERGENCY,
        oracle=oracle,
        config=strategy_config,
        clock=clock,
        on_alert=on_alert,
        on_event=[on_event],
    )


@pytest.fixture
def vault(strategy, ledger, clock) -> VaultHarness:
    harness = VaultHarness(strategy, ledger, clock)
    strategy.attach_accounting(harness)
    return harness


@pytest.fixture
def share_vault(ledger) -> MockShareVault:
    return MockShareVault(ledger, address="vault-shares", asset=ASSET, share_price=Decimal("1.25"))


@pytest.fixture
async def share_strategy(ledger, clock, share_vault, strategy_config) -> FixedYieldStrategy:
    share_market = MockMarket(
        ledger,
        clock,
        address="share-market",
        tokens=MarketTokens(wrapper="share-sy", principal="share-pt", yield_token="share-yt"),
        expiry=T0 + MATURITY,
        tokens_in=[share_vault.address, "share-sy"],
    )
    share_oracle = MockOracle()
    share_oracle.link_market(share_market)

    return await FixedYieldStrategy.create(
        address=STRATEGY,
        asset=ASSET,
        market=share_market,
        ledger=ledger,
        management=MANAGEMENT,
        governance=GOVERNANCE,
        keeper=KEEPER,
        oracle=share_oracle,
        converter=ShareTokenConverter(share_vault, ledger, STRATEGY),
        config=strategy_config,
        clock=clock,
    )


