"""
Fixed Yield Strategy - Valuation.

============================================================
PURPOSE
============================================================
Prices principal against the intermediary.

POLICIES:
- OracleValuation: TWAP rate from the price oracle
- ParValuation: 1:1, for deployments without an oracle

Valuation is read-only and unbounded. Bounds are applied by
the conversion engine through the slippage tolerance.

PAR SIMPLIFICATION:
    ParValuation overstates principal before maturity, since
    principal trades at a discount. Reports on such a strategy
    show the par value early, and the slippage guard on swaps
    is relative to par.

============================================================
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable

from .types import (
    ZERO,
    DEFAULT_TWAP_DURATION_SECONDS,
    round_down,
    MarketBinding,
)
from .adapters.base import PriceOracleAdapter


logger = logging.getLogger(__name__)


class ValuationPolicy(ABC):
    """Principal <-> intermediary pricing."""

    @abstractmethod
    async def principal_to_intermediary(self, amount: Decimal) -> Decimal:
        pass

    @abstractmethod
    async def intermediary_to_principal(self, amount: Decimal) -> Decimal:
        pass


class OracleValuation(ValuationPolicy):
    """
    Oracle TWAP valuation of the currently bound market.

    The binding is read through a provider so a rollover is
    picked up without rewiring.
    """

    def __init__(
        self,
        oracle: PriceOracleAdapter,
        binding_provider: Callable[[], MarketBinding],
        twap_duration: int = DEFAULT_TWAP_DURATION_SECONDS,
    ):
        self._oracle = oracle
        self._binding_provider = binding_provider
        self._twap_duration = twap_duration

    @property
    def twap_duration(self) -> int:
        return self._twap_duration

    async def principal_to_intermediary(self, amount: Decimal) -> Decimal:
        if amount == 0:
            return ZERO
        rate = await self._rate()
        return round_down(amount * rate)

    async def intermediary_to_principal(self, amount: Decimal) -> Decimal:
        if amount == 0:
            return ZERO
        rate = await self._rate()
        return round_down(amount / rate)

    async def _rate(self) -> Decimal:
        market = self._binding_provider().market_address
        return await self._oracle.get_principal_to_asset_rate(market, self._twap_duration)


class ParValuation(ValuationPolicy):
    """One principal is worth one intermediary."""

    async def principal_to_intermediary(self, amount: Decimal) -> Decimal:
        return round_down(amount)

    async def intermediary_to_principal(self, amount: Decimal) -> Decimal:
        return round_down(amount)
