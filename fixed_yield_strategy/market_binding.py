"""
Fixed Yield Strategy - Market Binding.

============================================================
PURPOSE
============================================================
Validates a market and produces the binding the rest of the
strategy trades against.

CHECK ORDER:
1. Intermediary is an admissible wrapper input AND output
2. Wrapper equals the expected wrapper (rollover only)
3. Oracle can serve the TWAP window (when an oracle is set)
4. Market is not expired

On success the market router gets an unlimited allowance for
the principal and the intermediary.

============================================================
"""

import logging
from typing import Optional

from .clock import ClockProtocol
from .ledger import TokenLedger
from .types import (
    UNLIMITED,
    DEFAULT_TWAP_DURATION_SECONDS,
    MarketBinding,
    ValidationError,
    StalenessError,
    MarketStateError,
)
from .adapters.base import MarketAdapter, PriceOracleAdapter


logger = logging.getLogger(__name__)


class MarketBinder:
    """Binds the strategy to a market."""

    def __init__(
        self,
        ledger: TokenLedger,
        holder: str,
        intermediary: str,
        clock: ClockProtocol,
        oracle: Optional[PriceOracleAdapter] = None,
        twap_duration: int = DEFAULT_TWAP_DURATION_SECONDS,
    ):
        self._ledger = ledger
        self._holder = holder
        self._intermediary = intermediary
        self._clock = clock
        self._oracle = oracle
        self._twap_duration = twap_duration

    async def bind(
        self,
        market: MarketAdapter,
        expected_wrapper: Optional[str] = None,
    ) -> MarketBinding:
        """
        Validate market and grant router allowances.

        Args:
            market: Market to bind
            expected_wrapper: Wrapper the market must share (rollover)

        Returns:
            The new MarketBinding

        Raises:
            ValidationError: Intermediary not admissible, wrapper mismatch
            StalenessError: Oracle not ready
            MarketStateError: Market already expired
        """
        tokens = await market.read_tokens()
        wrapper_tokens = await market.read_wrapper_tokens()

        if not wrapper_tokens.admits(self._intermediary):
            raise ValidationError(
                f"{self._intermediary} is not an admissible input and output of {tokens.wrapper}",
                code="VAL_INTERMEDIARY_NOT_ADMISSIBLE",
                details={"market": market.address},
            )

        if expected_wrapper is not None and tokens.wrapper != expected_wrapper:
            raise ValidationError(
                f"Market wrapper {tokens.wrapper} differs from {expected_wrapper}",
                code="VAL_WRAPPER_MISMATCH",
                details={"market": market.address},
            )

        if self._oracle is not None:
            readiness = await self._oracle.get_oracle_state(market.address, self._twap_duration)
            if readiness.increase_cardinality_required:
                raise StalenessError(
                    f"Oracle for {market.address} needs cardinality {readiness.cardinality_required}",
                    code="STL_MARKET_NOT_READY",
                    details={"cardinality_required": readiness.cardinality_required},
                )
            if not readiness.oldest_observation_satisfied:
                raise StalenessError(
                    f"Oracle for {market.address} cannot yet serve a {self._twap_duration}s window",
                    code="STL_OBSERVATION_WINDOW_UNSATISFIED",
                )

        expiry = await market.expiry()
        now = self._clock.now()
        if now >= expiry:
            raise MarketStateError(
                f"Market {market.address} expired at {expiry}",
                code="MKT_EXPIRED",
            )

        router = market.router_address
        self._ledger.approve(tokens.principal, self._holder, router, UNLIMITED)
        self._ledger.approve(self._intermediary, self._holder, router, UNLIMITED)

        binding = MarketBinding(
            market=market,
            market_address=market.address,
            principal=tokens.principal,
            wrapper=tokens.wrapper,
            yield_token=tokens.yield_token,
            expiry=expiry,
            bound_at=now,
        )
        logger.info(
            f"Bound market {market.address} "
            f"(principal={tokens.principal}, wrapper={tokens.wrapper}, expiry={expiry})"
        )
        return binding
