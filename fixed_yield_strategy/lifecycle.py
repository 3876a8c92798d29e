"""
Fixed Yield Strategy - Lifecycle Controller.

============================================================
PURPOSE
============================================================
Owns the active market binding and the transitions that
replace or unwind it.

STATE (derived, never stored):
    shutdown            -> SHUT_DOWN
    now >= expiry       -> EXPIRED
    otherwise           -> ACTIVE

TRANSITIONS:
- rollover: governance, expired market only. Sells all
  principal price-guarded and binds the successor market.
  The successor principal is bought by the next tend.
- emergency_withdraw: shutdown only. Sells principal with no
  output floor and unwraps everything to asset.

Shutdown itself belongs to the accounting layer.

============================================================
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple

from .access import RoleRegistry
from .clock import ClockProtocol
from .conversion import ConversionEngine
from .ledger import TokenLedger
from .market_binding import MarketBinder
from .types import (
    Role,
    LifecycleState,
    MarketBinding,
    SwapParameters,
    RolloverResult,
    EmergencyWithdrawResult,
    MarketStateError,
)
from .adapters.base import MarketAdapter


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LifecycleTransition:
    """One rollover, as recorded in the history."""

    from_market: str
    to_market: str
    from_expiry: int
    to_expiry: int
    principal_sold: Decimal
    timestamp: int


class LifecycleController:
    """Binding owner and lifecycle transitions."""

    def __init__(
        self,
        binding: MarketBinding,
        ledger: TokenLedger,
        holder: str,
        engine: ConversionEngine,
        binder: MarketBinder,
        roles: RoleRegistry,
        clock: ClockProtocol,
    ):
        self.binding = binding
        self._ledger = ledger
        self._holder = holder
        self._engine = engine
        self._binder = binder
        self._roles = roles
        self._clock = clock
        self._history: List[LifecycleTransition] = []

    @property
    def history(self) -> List[LifecycleTransition]:
        return list(self._history)

    def is_expired(self) -> bool:
        return self.binding.is_expired(self._clock.now())

    def state(self, is_shutdown: bool) -> LifecycleState:
        if is_shutdown:
            return LifecycleState.SHUT_DOWN
        if self.is_expired():
            return LifecycleState.EXPIRED
        return LifecycleState.ACTIVE

    # --------------------------------------------------------
    # ROLLOVER
    # --------------------------------------------------------

    async def rollover(
        self,
        caller: str,
        new_market: MarketAdapter,
        params: SwapParameters,
    ) -> RolloverResult:
        """
        Move the strategy onto a successor market.

        Raises:
            AuthorizationError: caller is not governance
            MarketStateError: current market has not expired
            ExecutionError, ValidationError, StalenessError: from sale or binding
        """
        self._roles.require(Role.GOVERNANCE, caller)

        old = self.binding
        now = self._clock.now()
        if not old.is_expired(now):
            raise MarketStateError(
                f"Market {old.market_address} matures at {old.expiry}",
                code="MKT_NOT_EXPIRED",
                details={"expiry": old.expiry, "now": now},
            )

        principal = self._ledger.balance_of(old.principal, self._holder)
        sale = await self._engine.sell_principal(principal, params.swap_slippage_bps)

        new = await self._binder.bind(new_market, expected_wrapper=old.wrapper)
        self.binding = new
        self._history.append(LifecycleTransition(
            from_market=old.market_address,
            to_market=new.market_address,
            from_expiry=old.expiry,
            to_expiry=new.expiry,
            principal_sold=sale.amount_in,
            timestamp=now,
        ))

        logger.info(
            f"Rolled over {old.market_address} -> {new.market_address}: "
            f"sold {sale.amount_in} principal for {sale.amount_out}"
        )
        return RolloverResult(
            old_market=old.market_address,
            new_market=new.market_address,
            principal_sold=sale.amount_in,
            intermediary_received=sale.amount_out,
            timestamp=now,
        )

    # --------------------------------------------------------
    # EMERGENCY
    # --------------------------------------------------------

    async def emergency_withdraw(self, amount: Decimal, is_shutdown: bool) -> EmergencyWithdrawResult:
        """
        Unwind up to amount principal, and all wrapper, into asset.

        Raises:
            MarketStateError: strategy is not shut down
        """
        if not is_shutdown:
            raise MarketStateError("Emergency withdraw requires shutdown", code="MKT_NOT_SHUTDOWN")

        principal = self._ledger.balance_of(self.binding.principal, self._holder)
        to_sell = min(amount, principal)
        sale = await self._engine.sell_principal(to_sell, None)

        converter = self._engine.converter
        wrapped = self._ledger.balance_of(self.binding.wrapper, self._holder)
        redemption = await self._engine.redeem_wrapper(wrapped, None)

        loose = self._ledger.balance_of(converter.intermediary, self._holder)
        unwrap = await self._engine.intermediary_to_asset(loose)

        logger.critical(
            f"Emergency withdraw: sold {sale.amount_in} principal for {sale.amount_out}, "
            f"unwrapped {unwrap.amount_in} into {unwrap.amount_out} {converter.asset}"
        )
        return EmergencyWithdrawResult(
            requested=amount,
            principal_sold=sale.amount_in,
            intermediary_received=sale.amount_out,
            asset_received=unwrap.amount_out,
            timestamp=self._clock.now(),
            wrapper_redeemed=redemption.amount_in,
        )

    # --------------------------------------------------------
    # SNAPSHOT
    # --------------------------------------------------------

    def snapshot(self) -> Tuple[MarketBinding, int]:
        return self.binding, len(self._history)

    def restore(self, snapshot: Tuple[MarketBinding, int]) -> None:
        self.binding, length = snapshot
        del self._history[length:]
