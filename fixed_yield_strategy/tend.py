"""
Fixed Yield Strategy - Tend Scheduler.

============================================================
PURPOSE
============================================================
Deploys idle capital into principal between reports.

TEND:
1. Stamp last_swap_timestamp
2. Convert all idle asset to intermediary and redeem any
   wrapper balance into intermediary, price-guarded
3. amount = min(intermediary balance, max_intermediary_per_tend)
4. Skip below min_amount_to_sell or after expiry
5. Buy principal, price-guarded

TRIGGER:
    Fires when the strategy is live, holds value, the market is
    unexpired, swapping is enabled, the cooldown has elapsed and
    the prospective intermediary balance clears both floors.

============================================================
"""

import logging
from decimal import Decimal
from typing import Callable

from .clock import ClockProtocol
from .conversion import ConversionEngine
from .ledger import TokenLedger
from .types import (
    round_down,
    MarketBinding,
    SwapParameters,
    TendResult,
    TendTrigger,
)


logger = logging.getLogger(__name__)


class TendScheduler:
    """Runs tends and evaluates the tend trigger."""

    def __init__(
        self,
        ledger: TokenLedger,
        holder: str,
        engine: ConversionEngine,
        clock: ClockProtocol,
        binding_provider: Callable[[], MarketBinding],
    ):
        self._ledger = ledger
        self._holder = holder
        self._engine = engine
        self._clock = clock
        self._binding_provider = binding_provider

    async def tend(self, params: SwapParameters) -> TendResult:
        """
        Convert idle asset and buy principal.

        Stamps params.last_swap_timestamp, so callers pass a working
        copy and keep it only if the tend commits.
        """
        now = self._clock.now()
        params.last_swap_timestamp = now
        result = TendResult(timestamp=now)

        converter = self._engine.converter
        if not converter.is_identity:
            idle = self._ledger.balance_of(converter.asset, self._holder)
            conversion = await self._engine.asset_to_intermediary(idle)
            result.asset_converted = conversion.amount_in
            result.intermediary_received = conversion.amount_out

        binding = self._binding_provider()
        wrapped = self._ledger.balance_of(binding.wrapper, self._holder)
        if wrapped > 0:
            redemption = await self._engine.redeem_wrapper(wrapped, params.swap_slippage_bps)
            result.wrapper_redeemed = redemption.amount_in
            result.intermediary_received += redemption.amount_out

        balance = self._ledger.balance_of(converter.intermediary, self._holder)
        amount = min(balance, params.max_intermediary_per_tend)

        if binding.is_expired(now):
            result.skipped_reason = "market expired"
        elif params.max_intermediary_per_tend == 0:
            result.skipped_reason = "swapping disabled"
        elif amount == 0:
            result.skipped_reason = "nothing to swap"
        elif amount < params.min_amount_to_sell:
            result.skipped_reason = "below min_amount_to_sell"

        if result.skipped_reason is not None:
            logger.warning(f"Tend skipped swap: {result.skipped_reason} (balance {balance})")
            return result

        swap = await self._engine.buy_principal(amount, params.swap_slippage_bps)
        result.intermediary_swapped = swap.amount_in
        result.principal_received = swap.amount_out
        logger.info(f"Tend swapped {swap.amount_in} {swap.token_in} for {swap.amount_out} {swap.token_out}")
        return result

    async def prospective_intermediary(self) -> Decimal:
        """Loose intermediary plus redeemable wrapper and idle asset at the converter price."""
        converter = self._engine.converter
        balance = self._ledger.balance_of(converter.intermediary, self._holder)
        wrapped = self._ledger.balance_of(self._binding_provider().wrapper, self._holder)
        balance += await self._engine.wrapper_value(wrapped)
        if converter.is_identity:
            return balance
        idle = self._ledger.balance_of(converter.asset, self._holder)
        if idle == 0:
            return balance
        price = await converter.price_intermediary_in_asset()
        return balance + round_down(idle / price)

    async def should_tend(
        self,
        params: SwapParameters,
        is_shutdown: bool,
        total_value: Decimal,
    ) -> TendTrigger:
        now = self._clock.now()
        if is_shutdown:
            return TendTrigger(False, "strategy is shut down")
        if total_value <= 0:
            return TendTrigger(False, "no assets under management")
        if self._binding_provider().is_expired(now):
            return TendTrigger(False, "market expired")
        if params.max_intermediary_per_tend == 0:
            return TendTrigger(False, "swapping disabled")
        if not params.cooldown_elapsed(now):
            return TendTrigger(False, "min_swap_interval not elapsed")

        prospective = await self.prospective_intermediary()
        if prospective == 0 or prospective < params.min_amount_to_sell:
            return TendTrigger(False, "balance below min_amount_to_sell")
        if prospective < params.min_amount_to_trigger:
            return TendTrigger(False, "balance below min_amount_to_trigger")
        return TendTrigger(True, "idle capital ready to deploy")
