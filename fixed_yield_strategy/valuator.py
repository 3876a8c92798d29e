"""
Fixed Yield Strategy - Harvest/Report Valuator.

============================================================
PURPOSE
============================================================
Prices everything the strategy holds in asset terms.

    total = idle asset
          + (loose intermediary + principal in intermediary
             + wrapper in intermediary) * asset per intermediary

When the asset is the intermediary, the loose balance is
counted once, as idle asset.

The same formula applies before and after maturity. After
maturity the oracle converges on par.

============================================================
"""

import logging
from decimal import Decimal
from typing import Callable, Tuple

from .conversion import ConversionEngine
from .clock import ClockProtocol
from .ledger import TokenLedger
from .types import ZERO, round_down, MarketBinding, ReportResult


logger = logging.getLogger(__name__)


class HarvestValuator:
    """Computes total strategy value for reports."""

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

    async def total_value(self, claim_rewards: bool = False) -> ReportResult:
        """
        Value all holdings, optionally claiming market rewards.

        Every oracle and converter read runs before the claim, so a
        failed valuation leaves the rewards pending on the market.
        """
        binding = self._binding_provider()
        converter = self._engine.converter
        now = self._clock.now()

        principal, principal_value = await self._principal(binding)
        wrapped, wrapper_value = await self._wrapper(binding)
        price = await converter.price_intermediary_in_asset()

        rewards = {}
        if claim_rewards:
            rewards = await binding.market.redeem_rewards(self._holder)
            if rewards:
                logger.info(f"Claimed rewards {rewards} from {binding.market_address}")
            if binding.principal in rewards:
                principal, principal_value = await self._principal(binding)
            if binding.wrapper in rewards:
                wrapped, wrapper_value = await self._wrapper(binding)

        idle = self._ledger.balance_of(converter.asset, self._holder)
        loose = ZERO if converter.is_identity else self._ledger.balance_of(converter.intermediary, self._holder)
        total = idle + round_down((loose + principal_value + wrapper_value) * price)

        logger.debug(
            f"Valued strategy at {total}: idle={idle}, intermediary={loose}, "
            f"principal={principal} (~{principal_value}), wrapper={wrapped} (~{wrapper_value})"
        )
        return ReportResult(
            total_assets=total,
            idle_asset=idle,
            principal_balance=principal,
            principal_value=principal_value,
            intermediary_balance=loose,
            intermediary_price=price,
            expired=binding.is_expired(now),
            timestamp=now,
            rewards_claimed=rewards,
            wrapper_balance=wrapped,
            wrapper_value=wrapper_value,
        )

    async def _principal(self, binding: MarketBinding) -> Tuple[Decimal, Decimal]:
        principal = self._ledger.balance_of(binding.principal, self._holder)
        return principal, await self._engine.valuation.principal_to_intermediary(principal)

    async def _wrapper(self, binding: MarketBinding) -> Tuple[Decimal, Decimal]:
        wrapped = self._ledger.balance_of(binding.wrapper, self._holder)
        return wrapped, await self._engine.wrapper_value(wrapped)
