"""
Fixed Yield Strategy - Conversion Engine.

============================================================
PURPOSE
============================================================
Moves value between asset, intermediary and principal.

SUPPORTED PAIRS:
- intermediary -> principal  (bound market)
- principal -> intermediary  (bound market, par after expiry)
- asset <-> intermediary     (asset converter)
- wrapper -> intermediary     (wrapper redemption)

PRICE GUARD:
    min_out = expected * (10000 - slippage_bps) / 10000
    where expected comes from the valuation policy. Every
    market swap reverts below min_out.

============================================================
"""

import logging
from decimal import Decimal
from typing import Callable, Optional

from .ledger import TokenLedger
from .converters import AssetConverter
from .valuation import ValuationPolicy
from .types import (
    MAX_BPS,
    ZERO,
    round_down,
    MarketBinding,
    SwapResult,
    ValidationError,
    ExecutionError,
)
from .adapters.base import SwapRequest


logger = logging.getLogger(__name__)


class ConversionEngine:
    """
    Executes conversions on behalf of the holder.

    Market swaps pull tokens through the router allowance granted
    at binding time.
    """

    def __init__(
        self,
        ledger: TokenLedger,
        holder: str,
        converter: AssetConverter,
        valuation: ValuationPolicy,
        binding_provider: Callable[[], MarketBinding],
    ):
        self._ledger = ledger
        self._holder = holder
        self._converter = converter
        self._valuation = valuation
        self._binding_provider = binding_provider

    @property
    def converter(self) -> AssetConverter:
        return self._converter

    @property
    def valuation(self) -> ValuationPolicy:
        return self._valuation

    @staticmethod
    def min_out(expected: Decimal, bps: int) -> Decimal:
        """Minimum acceptable output for an expected amount."""
        return round_down(expected * (MAX_BPS - bps) / MAX_BPS)

    # --------------------------------------------------------
    # GENERIC SWAP
    # --------------------------------------------------------

    async def swap(
        self,
        from_token: str,
        to_token: str,
        amount: Decimal,
        min_out: Decimal = ZERO,
    ) -> SwapResult:
        """
        Swap an exact amount of from_token into to_token.

        Raises:
            ValidationError: Unsupported pair
            ExecutionError: Output below min_out
        """
        binding = self._binding_provider()
        intermediary = self._converter.intermediary
        asset = self._converter.asset

        if from_token == intermediary and to_token == binding.principal:
            route = self._buy_on_market
        elif from_token == binding.principal and to_token == intermediary:
            route = self._sell_on_market
        elif from_token == binding.wrapper and to_token == intermediary:
            route = self._redeem_wrapper
        elif from_token == asset and to_token == intermediary and not self._converter.is_identity:
            route = self._wrap
        elif from_token == intermediary and to_token == asset and not self._converter.is_identity:
            route = self._unwrap
        else:
            raise ValidationError(
                f"Unsupported conversion {from_token} -> {to_token}",
                code="VAL_UNSUPPORTED_CONVERSION",
            )

        if amount == 0:
            logger.debug(f"Zero-amount swap {from_token} -> {to_token} skipped")
            return SwapResult.skipped(from_token, to_token)

        amount_out = await route(binding, amount, min_out)
        if amount_out < min_out:
            raise ExecutionError(
                f"Received {amount_out} {to_token}, below minimum {min_out}",
                code="EXE_SLIPPAGE_EXCEEDED",
                details={"from": from_token, "to": to_token, "amount": str(amount)},
            )

        logger.debug(f"Swapped {amount} {from_token} -> {amount_out} {to_token} (min {min_out})")
        return SwapResult(
            token_in=from_token,
            token_out=to_token,
            amount_in=amount,
            amount_out=amount_out,
            min_amount_out=min_out,
        )

    # --------------------------------------------------------
    # PRICE-GUARDED HELPERS
    # --------------------------------------------------------

    async def buy_principal(self, amount: Decimal, bps: int) -> SwapResult:
        binding = self._binding_provider()
        if amount == 0:
            return SwapResult.skipped(self._converter.intermediary, binding.principal)
        expected = await self._valuation.intermediary_to_principal(amount)
        return await self.swap(
            self._converter.intermediary, binding.principal, amount, self.min_out(expected, bps),
        )

    async def sell_principal(self, amount: Decimal, bps: Optional[int]) -> SwapResult:
        """Sell principal. bps=None accepts any output."""
        binding = self._binding_provider()
        if amount == 0:
            return SwapResult.skipped(binding.principal, self._converter.intermediary)
        if bps is None:
            min_out = ZERO
        else:
            expected = await self._valuation.principal_to_intermediary(amount)
            min_out = self.min_out(expected, bps)
        return await self.swap(binding.principal, self._converter.intermediary, amount, min_out)

    async def redeem_wrapper(self, amount: Decimal, bps: Optional[int]) -> SwapResult:
        """Redeem wrapper into intermediary. bps=None accepts any output."""
        binding = self._binding_provider()
        if amount == 0:
            return SwapResult.skipped(binding.wrapper, self._converter.intermediary)
        if bps is None:
            min_out = ZERO
        else:
            min_out = self.min_out(await self.wrapper_value(amount), bps)
        return await self.swap(binding.wrapper, self._converter.intermediary, amount, min_out)

    async def wrapper_value(self, amount: Decimal) -> Decimal:
        """Wrapper priced in intermediary units by the wrapper itself."""
        if amount == 0:
            return ZERO
        binding = self._binding_provider()
        return await binding.market.preview_redeem_wrapper(self._converter.intermediary, amount)

    async def asset_to_intermediary(self, amount: Decimal) -> SwapResult:
        asset, intermediary = self._converter.asset, self._converter.intermediary
        if self._converter.is_identity:
            return SwapResult(asset, intermediary, amount, amount)
        return await self.swap(asset, intermediary, amount)

    async def intermediary_to_asset(self, amount: Decimal) -> SwapResult:
        asset, intermediary = self._converter.asset, self._converter.intermediary
        if self._converter.is_identity:
            return SwapResult(intermediary, asset, amount, amount)
        return await self.swap(intermediary, asset, amount)

    # --------------------------------------------------------
    # ROUTES
    # --------------------------------------------------------

    async def _buy_on_market(self, binding: MarketBinding, amount: Decimal, min_out: Decimal) -> Decimal:
        response = await binding.market.swap_token_for_principal(SwapRequest(
            sender=self._holder,
            receiver=self._holder,
            token_in=self._converter.intermediary,
            token_out=binding.principal,
            amount_in=amount,
            min_amount_out=min_out,
        ))
        return response.amount_out

    async def _sell_on_market(self, binding: MarketBinding, amount: Decimal, min_out: Decimal) -> Decimal:
        response = await binding.market.swap_principal_for_token(SwapRequest(
            sender=self._holder,
            receiver=self._holder,
            token_in=binding.principal,
            token_out=self._converter.intermediary,
            amount_in=amount,
            min_amount_out=min_out,
        ))
        if response.redeemed_at_maturity:
            logger.debug(f"Redeemed {amount} {binding.principal} at par")
        return response.amount_out

    async def _redeem_wrapper(self, binding: MarketBinding, amount: Decimal, min_out: Decimal) -> Decimal:
        response = await binding.market.redeem_wrapper(SwapRequest(
            sender=self._holder,
            receiver=self._holder,
            token_in=binding.wrapper,
            token_out=self._converter.intermediary,
            amount_in=amount,
            min_amount_out=min_out,
        ))
        return response.amount_out

    async def _wrap(self, binding: MarketBinding, amount: Decimal, min_out: Decimal) -> Decimal:
        return await self._converter.asset_to_intermediary(amount)

    async def _unwrap(self, binding: MarketBinding, amount: Decimal, min_out: Decimal) -> Decimal:
        return await self._converter.intermediary_to_asset(amount)
