"""
End-to-End Tests.

============================================================
PURPOSE
============================================================
Full depositor journeys through the accounting harness:
deposit, tend, report, profit unlock and redemption, with and
without a rollover in between.

============================================================
"""

from decimal import Decimal

import pytest

from fixed_yield_strategy import LifecycleState, StrategyEventType

from conftest import ALICE, BOB, DAY, GOVERNANCE, KEEPER, MANAGEMENT, MATURITY, T0


class TestDepositorJourney:
    """Test the depositor round trip."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, strategy, vault, ledger, clock, market, events):
        """Test deposit, tend, report, unlock and redeem returns the deposit."""
        shares = await vault.deposit(ALICE, Decimal("1000"))
        assert shares == Decimal("1000")
        assert (await strategy.should_tend()).should_tend

        await strategy.tend(KEEPER)
        assert strategy.balance_of_asset() == 0
        assert not (await strategy.should_tend()).should_tend

        clock.advance(days=10)
        market.set_principal_price(Decimal("0.96"))
        profit, loss = await vault.report()
        assert profit > 0
        assert loss == 0

        clock.advance(days=7)
        paid, loss = await vault.redeem(ALICE, shares)

        assert loss == 0
        assert paid >= Decimal("990")
        assert paid > Decimal("1000")
        assert ledger.balance_of("asset", ALICE) == Decimal("9000") + paid
        assert strategy.balance_of_principal() == 0

        types = [e.event_type for e in events]
        assert types[:3] == [StrategyEventType.MARKET_BOUND, StrategyEventType.TEND, StrategyEventType.REPORT]
        assert StrategyEventType.FREE_FUNDS in types

    @pytest.mark.asyncio
    async def test_profit_is_locked_until_unlock(self, strategy, vault, clock, market):
        """Test a redemption during the unlock period excludes locked profit."""
        shares = await vault.deposit(ALICE, Decimal("1000"))
        await strategy.tend(KEEPER)
        market.set_principal_price(Decimal("0.96"))
        await vault.report()

        locked_value = vault.convert_to_assets(shares)
        clock.advance(days=7)
        unlocked = vault.convert_to_assets(shares)

        assert locked_value < unlocked
        assert locked_value <= Decimal("1000")

    @pytest.mark.asyncio
    async def test_two_depositors(self, strategy, vault, clock, market):
        """Test a later depositor does not capture earlier profit."""
        alice_shares = await vault.deposit(ALICE, Decimal("1000"))
        await strategy.tend(KEEPER)
        market.set_principal_price(Decimal("0.96"))
        await vault.report()
        clock.advance(days=7)

        bob_shares = await vault.deposit(BOB, Decimal("1000"))
        await strategy.tend(KEEPER)
        assert bob_shares < alice_shares

        alice_paid, alice_loss = await vault.redeem(ALICE, alice_shares)
        bob_paid, bob_loss = await vault.redeem(BOB, bob_shares)

        assert alice_paid > Decimal("1010")
        assert Decimal("999") < bob_paid <= Decimal("1000")
        assert alice_loss < Decimal("0.000001")
        assert bob_loss < Decimal("0.000001")

    @pytest.mark.asyncio
    async def test_cycle_through_rollover(self, strategy, vault, clock, successor_market):
        """Test capital survives maturity and rollover into the successor."""
        shares = await vault.deposit(ALICE, Decimal("1000"))
        await strategy.tend(KEEPER)

        clock.set_time(T0 + MATURITY)
        assert await strategy.lifecycle_state() == LifecycleState.EXPIRED
        assert await strategy.available_deposit_limit(BOB) == 0
        profit, _ = await vault.report()
        assert profit > Decimal("50")

        await strategy.rollover(GOVERNANCE, successor_market)
        assert strategy.balance_of_principal() == 0
        assert strategy.balance_of_intermediary() > 0

        await strategy.tend(KEEPER)
        assert strategy.balance_of_principal() > 0

        clock.advance(days=7)
        paid, loss = await vault.redeem(ALICE, shares)

        assert paid > Decimal("1052")
        assert loss <= paid * Decimal("0.0001")

    @pytest.mark.asyncio
    async def test_shutdown_and_emergency_exit(self, strategy, vault, ledger):
        """Test depositors exit from idle asset after an emergency unwind."""
        shares = await vault.deposit(ALICE, Decimal("1000"))
        await strategy.tend(KEEPER)

        vault.shutdown()
        assert await strategy.lifecycle_state() == LifecycleState.SHUT_DOWN
        await strategy.emergency_withdraw(MANAGEMENT)
        assert strategy.balance_of_principal() == 0

        await vault.report()
        paid, loss = await vault.redeem(ALICE, shares)

        assert loss == 0
        assert Decimal("999.99") < paid <= Decimal("1000")
        assert strategy.balance_of_asset() == 0


class TestDepositGating:
    """Test deposit gating through the harness."""

    @pytest.mark.asyncio
    async def test_allow_list_admits_only_listed(self, strategy, vault):
        """Test allow-listing one depositor does not admit another."""
        await strategy.set_open_deposits(MANAGEMENT, False)
        assert await strategy.available_deposit_limit(BOB) == 0

        await strategy.add_to_allow_list(MANAGEMENT, ALICE)
        assert await strategy.available_deposit_limit(BOB) == 0

        with pytest.raises(ValueError):
            await vault.deposit(BOB, Decimal("10"))
        assert await vault.deposit(ALICE, Decimal("10")) == Decimal("10")

    @pytest.mark.asyncio
    async def test_withdrawals_gated_until_expiry(self, strategy, vault, clock):
        """Test closed withdrawals reopen at maturity."""
        shares = await vault.deposit(ALICE, Decimal("100"))
        await strategy.set_open_withdrawals(MANAGEMENT, False)

        with pytest.raises(ValueError):
            await vault.redeem(ALICE, shares)

        clock.advance(MATURITY + DAY)
        paid, _ = await vault.redeem(ALICE, shares)
        assert paid == Decimal("100")
