"""
Fixed Yield Strategy - Facade.

============================================================
PURPOSE
============================================================
The strategy as seen by the accounting layer, keepers,
management and governance.

CRITICAL PRINCIPLE:
    "Every entry point commits fully or not at all."
    "Every swap is bounded by a live price check."

ENTRY POINTS:
    Accounting hooks:
        deploy_funds, free_funds, harvest_and_report,
        tend_trigger, available_deposit_limit,
        available_withdraw_limit
    Keeper:
        tend, kick_auction
    Governance:
        rollover
    Emergency:
        emergency_withdraw
    Management:
        set_* setters, add_to_allow_list, set_auction,
        apply_management_update

Every state-mutating entry point runs inside one
StrategyTransaction. Failures roll back, alert and re-raise.

============================================================
"""

import dataclasses
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, Union

import pydantic

from .access import AccessGate, AllowList, RoleRegistry
from .alerting import (
    Alert,
    AlertSeverity,
    AlertType,
    create_emergency_withdraw_alert,
    create_market_expired_alert,
    create_operation_failed_alert,
    create_rollover_alert,
)
from .auction import AuctionHandoff
from .clock import ClockProtocol, SystemClock
from .config import StrategyConfig
from .conversion import ConversionEngine
from .converters import AssetConverter, IdentityConverter
from .ledger import TokenLedger
from .lifecycle import LifecycleController, LifecycleTransition
from .market_binding import MarketBinder
from .schemas import ManagementUpdate, MarketStatus, StrategyStatus
from .tend import TendScheduler
from .transaction import EventListener, StrategyTransaction, TransactionScope
from .valuation import OracleValuation, ParValuation, ValuationPolicy
from .valuator import HarvestValuator
from .types import (
    UNLIMITED,
    ZERO,
    round_down,
    Role,
    LifecycleState,
    StrategyEventType,
    MarketBinding,
    SwapParameters,
    TendResult,
    TendTrigger,
    ReportResult,
    RolloverResult,
    EmergencyWithdrawResult,
    FreeFundsResult,
    AuctionKickResult,
    StrategyEvent,
    ValidationError,
    MarketStateError,
)
from .adapters.base import (
    AccountingView,
    AuctionAdapter,
    MarketAdapter,
    PriceOracleAdapter,
    describe_adapter,
)


logger = logging.getLogger(__name__)


AlertCallback = Callable[[Alert], Awaitable[None]]


class FixedYieldStrategy:
    """
    Fixed-maturity principal strategy.

    Build with `await FixedYieldStrategy.create(...)`, which binds
    the initial market.
    """

    def __init__(
        self,
        address: str,
        ledger: TokenLedger,
        clock: ClockProtocol,
        config: StrategyConfig,
        converter: AssetConverter,
        binder: MarketBinder,
        binding: MarketBinding,
        roles: RoleRegistry,
        oracle: Optional[PriceOracleAdapter] = None,
        on_alert: Optional[AlertCallback] = None,
        accounting: Optional[AccountingView] = None,
    ):
        self._address = address
        self._ledger = ledger
        self._clock = clock
        self._config = config
        self._converter = converter
        self._roles = roles
        self._on_alert = on_alert
        self._accounting = accounting

        self._params: SwapParameters = config.swap.to_parameters()
        self._auction: Optional[AuctionAdapter] = None
        self._expiry_alerted: set = set()

        allow_list = AllowList()
        for depositor in config.access.allow_list:
            allow_list.add(depositor)
        self._gate = AccessGate(
            allow_list,
            open_deposits=config.access.open_deposits,
            open_withdrawals=config.access.open_withdrawals,
        )

        valuation: ValuationPolicy
        if oracle is not None:
            valuation = OracleValuation(oracle, self._current_binding, config.oracle.twap_duration_seconds)
        else:
            valuation = ParValuation()

        self._engine = ConversionEngine(ledger, address, converter, valuation, self._current_binding)
        self._lifecycle = LifecycleController(
            binding, ledger, address, self._engine, binder, roles, clock,
        )
        self._tend = TendScheduler(ledger, address, self._engine, clock, self._current_binding)
        self._valuator = HarvestValuator(ledger, address, self._engine, clock, self._current_binding)
        self._handoff = AuctionHandoff(ledger, address, converter.asset, converter.intermediary)

        self._transaction = StrategyTransaction(
            ledger,
            participants=[self, self._gate, self._lifecycle],
            on_alert=on_alert if config.alerting.enabled else None,
        )

    # --------------------------------------------------------
    # CONSTRUCTION
    # --------------------------------------------------------

    @classmethod
    async def create(
        cls,
        address: str,
        asset: str,
        market: MarketAdapter,
        ledger: TokenLedger,
        management: str,
        governance: str,
        keeper: Optional[str] = None,
        emergency_admin: Optional[str] = None,
        oracle: Optional[PriceOracleAdapter] = None,
        converter: Optional[AssetConverter] = None,
        config: Optional[StrategyConfig] = None,
        clock: Optional[ClockProtocol] = None,
        on_alert: Optional[AlertCallback] = None,
        on_event: Optional[List[EventListener]] = None,
        accounting: Optional[AccountingView] = None,
    ) -> "FixedYieldStrategy":
        """
        Validate configuration, bind the initial market and build the strategy.

        Raises:
            ValidationError: Bad configuration or market pairing
            StalenessError: Oracle not ready for the market
            MarketStateError: Market already expired
        """
        config = config or StrategyConfig()
        config.ensure_valid()
        clock = clock or SystemClock()
        converter = converter or IdentityConverter(asset)
        if converter.asset != asset:
            raise ValidationError(
                f"Converter asset {converter.asset} differs from strategy asset {asset}",
                code="VAL_INVALID_CONFIG",
            )

        use_oracle = oracle if config.oracle.enabled else None
        binder = MarketBinder(
            ledger,
            address,
            converter.intermediary,
            clock,
            oracle=use_oracle,
            twap_duration=config.oracle.twap_duration_seconds,
        )
        binding = await binder.bind(market)
        if use_oracle is None:
            logger.warning(f"Strategy {address} has no oracle, valuing principal at par")

        roles = RoleRegistry()
        roles.grant(Role.MANAGEMENT, management)
        roles.grant(Role.GOVERNANCE, governance)
        if keeper:
            roles.grant(Role.KEEPER, keeper)
        if emergency_admin:
            roles.grant(Role.EMERGENCY_ADMIN, emergency_admin)

        strategy = cls(
            address=address,
            ledger=ledger,
            clock=clock,
            config=config,
            converter=converter,
            binder=binder,
            binding=binding,
            roles=roles,
            oracle=use_oracle,
            on_alert=on_alert,
            accounting=accounting,
        )

        for listener in on_event or []:
            strategy.add_listener(listener)

        async with strategy._transaction.atomic("bind") as scope:
            scope.emit(strategy._event(
                StrategyEventType.MARKET_BOUND,
                {"binding": binding.to_dict(), "asset": asset, "intermediary": converter.intermediary},
            ))

        logger.info(f"Strategy {address} created for {asset} on {binding.market_address}")
        return strategy

    def attach_accounting(self, accounting: AccountingView) -> None:
        """Connect the accounting layer read view."""
        self._accounting = accounting

    def add_listener(self, listener: EventListener) -> None:
        """Register a coroutine called with every committed event."""
        self._transaction.add_listener(listener)

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def asset(self) -> str:
        return self._converter.asset

    @property
    def intermediary(self) -> str:
        return self._converter.intermediary

    @property
    def binding(self) -> MarketBinding:
        return self._lifecycle.binding

    @property
    def params(self) -> SwapParameters:
        """Copy of the current swap parameters."""
        return dataclasses.replace(self._params)

    @property
    def allow_list(self) -> AllowList:
        return self._gate.allow_list

    @property
    def auction(self) -> Optional[AuctionAdapter]:
        return self._auction

    @property
    def roles(self) -> RoleRegistry:
        return self._roles

    @property
    def open_deposits(self) -> bool:
        return self._gate.open_deposits

    @property
    def open_withdrawals(self) -> bool:
        return self._gate.open_withdrawals

    @property
    def history(self) -> List[LifecycleTransition]:
        return self._lifecycle.history

    # --------------------------------------------------------
    # ACCOUNTING HOOKS
    # --------------------------------------------------------

    async def deploy_funds(self, amount: Decimal) -> None:
        """Deposits stay idle here. The next tend deploys them."""
        logger.debug(f"deploy_funds({amount}): capital is deployed by tend")

    async def free_funds(self, amount: Decimal) -> FreeFundsResult:
        """
        Free amount of asset for a withdrawal.

        Sells the withdrawer's share of principal and loose
        intermediary, price-guarded. A shortfall shows up as a
        loss for the accounting layer to bound.
        """
        self._check_amount(amount)
        async with self._entry("free_funds") as scope:
            result = await self._free_funds(amount)
            if result.asset_freed > 0:
                scope.emit(self._event(StrategyEventType.FREE_FUNDS, {
                    "requested": result.requested,
                    "fraction": result.fraction,
                    "principal_sold": result.principal_sold,
                    "wrapper_redeemed": result.wrapper_redeemed,
                    "asset_freed": result.asset_freed,
                }))
        return result

    async def harvest_and_report(self) -> ReportResult:
        """Value all holdings in asset terms."""
        async with self._entry("harvest_and_report") as scope:
            report = await self._valuator.total_value(
                claim_rewards=self._config.report.claim_rewards_on_report,
            )
            scope.emit(self._event(StrategyEventType.REPORT, {
                "total_assets": report.total_assets,
                "idle_asset": report.idle_asset,
                "principal_balance": report.principal_balance,
                "principal_value": report.principal_value,
                "wrapper_value": report.wrapper_value,
                "expired": report.expired,
                "rewards_claimed": report.rewards_claimed,
            }))
        logger.info(f"Report: total assets {report.total_assets}")
        return report

    async def tend_trigger(self) -> Tuple[bool, bytes]:
        """Hook form of should_tend."""
        return (await self.should_tend()).as_tuple()

    async def available_deposit_limit(self, owner: str) -> Decimal:
        return self._gate.deposit_limit(owner, self._lifecycle.is_expired())

    async def available_withdraw_limit(self, owner: str) -> Decimal:
        return self._gate.withdraw_limit(owner, self._lifecycle.is_expired())

    # --------------------------------------------------------
    # KEEPER
    # --------------------------------------------------------

    async def tend(self, caller: str) -> TendResult:
        """
        Deploy idle capital into principal.

        Raises:
            AuthorizationError: caller is not keeper or management
            MarketStateError: strategy is shut down
            ExecutionError: market could not fill within tolerance
        """
        async with self._entry("tend") as scope:
            self._roles.require(Role.KEEPER, caller)
            if await self._is_shutdown():
                raise MarketStateError("Cannot tend a shut down strategy", code="MKT_SHUTDOWN")
            params = dataclasses.replace(self._params)
            result = await self._tend.tend(params)
            self._params = params
            scope.emit(self._event(StrategyEventType.TEND, {
                "asset_converted": result.asset_converted,
                "intermediary_swapped": result.intermediary_swapped,
                "principal_received": result.principal_received,
                "wrapper_redeemed": result.wrapper_redeemed,
                "skipped_reason": result.skipped_reason,
            }))
        return result

    async def kick_auction(self, caller: str, token: str) -> AuctionKickResult:
        """
        Hand a stray reward token to the auction.

        Raises:
            AuthorizationError: caller is not keeper or management
            ValidationError: core token, or no auction set
            ExecutionError: auction has nothing to sell
        """
        async with self._entry("kick_auction") as scope:
            self._roles.require(Role.KEEPER, caller)
            result = await self._handoff.kick(token, self._auction, self.binding)
            scope.emit(self._event(StrategyEventType.AUCTION_KICK, {
                "token": token,
                "auction": result.auction,
                "amount_transferred": result.amount_transferred,
                "available": result.available,
            }))
            scope.alert(Alert(
                alert_type=AlertType.AUCTION_KICKED,
                severity=AlertSeverity.INFO,
                message=f"Kicked {result.available} {token} into auction",
                strategy=self._address,
                market=self.binding.market_address,
            ))
        return result

    # --------------------------------------------------------
    # GOVERNANCE / EMERGENCY
    # --------------------------------------------------------

    async def rollover(self, caller: str, market: MarketAdapter) -> RolloverResult:
        """
        Sell all principal of the expired market and bind its successor.

        Raises:
            AuthorizationError: caller is not governance
            MarketStateError: current market has not expired
            ValidationError, StalenessError, ExecutionError: from sale or binding
        """
        async with self._entry("rollover") as scope:
            old_market = self.binding.market_address
            result = await self._lifecycle.rollover(caller, market, self._params)
            scope.emit(self._event(StrategyEventType.ROLLOVER, {
                "old_market": old_market,
                "principal_sold": result.principal_sold,
                "intermediary_received": result.intermediary_received,
                "binding": self.binding.to_dict(),
            }))
            scope.alert(create_rollover_alert(
                self._address, old_market, result.new_market, str(result.principal_sold),
            ))
        return result

    async def emergency_withdraw(self, caller: str, amount: Decimal = UNLIMITED) -> EmergencyWithdrawResult:
        """
        Unwind up to amount principal into asset after shutdown.

        Raises:
            AuthorizationError: caller is not emergency admin or management
            MarketStateError: strategy is not shut down
        """
        self._check_amount(amount, allow_unlimited=True)
        async with self._entry("emergency_withdraw") as scope:
            self._roles.require(Role.EMERGENCY_ADMIN, caller)
            result = await self._lifecycle.emergency_withdraw(amount, await self._is_shutdown())
            scope.emit(self._event(StrategyEventType.EMERGENCY_WITHDRAW, {
                "requested": result.requested,
                "principal_sold": result.principal_sold,
                "wrapper_redeemed": result.wrapper_redeemed,
                "intermediary_received": result.intermediary_received,
                "asset_received": result.asset_received,
            }))
            scope.alert(create_emergency_withdraw_alert(
                self._address,
                self.binding.market_address,
                str(result.principal_sold),
                str(result.asset_received),
            ))
        return result

    # --------------------------------------------------------
    # MANAGEMENT
    # --------------------------------------------------------

    async def set_max_intermediary_per_tend(self, caller: str, amount: Decimal) -> None:
        """0 disables swapping, UNLIMITED removes the cap."""
        await self._update_params(caller, max_intermediary_per_tend=amount)

    async def set_min_swap_interval(self, caller: str, seconds: int) -> None:
        await self._update_params(caller, min_swap_interval=seconds)

    async def set_min_amount_to_sell(self, caller: str, amount: Decimal) -> None:
        await self._update_params(caller, min_amount_to_sell=amount)

    async def set_min_amount_to_trigger(self, caller: str, amount: Decimal) -> None:
        await self._update_params(caller, min_amount_to_trigger=amount)

    async def set_swap_slippage_bps(self, caller: str, bps: int) -> None:
        await self._update_params(caller, swap_slippage_bps=bps)

    async def set_open_deposits(self, caller: str, open_deposits: bool) -> None:
        async with self._entry("set_open_deposits") as scope:
            self._roles.require(Role.MANAGEMENT, caller)
            self._gate.open_deposits = open_deposits
            scope.emit(self._event(StrategyEventType.CONFIG_UPDATE, {"open_deposits": open_deposits}))

    async def set_open_withdrawals(self, caller: str, open_withdrawals: bool) -> None:
        async with self._entry("set_open_withdrawals") as scope:
            self._roles.require(Role.MANAGEMENT, caller)
            self._gate.open_withdrawals = open_withdrawals
            scope.emit(self._event(StrategyEventType.CONFIG_UPDATE, {"open_withdrawals": open_withdrawals}))

    async def add_to_allow_list(self, caller: str, depositor: str) -> None:
        """Admit depositor. There is no removal."""
        async with self._entry("add_to_allow_list") as scope:
            self._roles.require(Role.MANAGEMENT, caller)
            if self._gate.allow_list.add(depositor):
                scope.emit(self._event(StrategyEventType.ALLOW_LIST_GRANT, {"depositor": depositor}))

    async def set_auction(self, caller: str, auction: Optional[AuctionAdapter]) -> None:
        """
        Set or clear the reward auction.

        Raises:
            ValidationError: auction receiver or want does not match
        """
        async with self._entry("set_auction") as scope:
            self._roles.require(Role.MANAGEMENT, caller)
            if auction is not None:
                await self._handoff.validate(auction)
            self._auction = auction
            scope.emit(self._event(StrategyEventType.CONFIG_UPDATE, {
                "auction": auction.address if auction else None,
            }))
        logger.info(f"Auction set to {describe_adapter(auction)}")

    async def apply_management_update(
        self,
        caller: str,
        update: Union[ManagementUpdate, Dict[str, Any]],
    ) -> None:
        """
        Apply a batch of management changes atomically.

        Raises:
            ValidationError: update fails schema or parameter checks
        """
        if not isinstance(update, ManagementUpdate):
            try:
                update = ManagementUpdate.model_validate(update)
            except pydantic.ValidationError as e:
                raise ValidationError(
                    f"Invalid management update: {e.error_count()} error(s)",
                    code="VAL_INVALID_CONFIG",
                    details={"errors": [err["msg"] for err in e.errors()]},
                ) from e

        changes = update.model_dump(exclude_none=True, exclude={"allow_list_additions"})
        async with self._entry("apply_management_update") as scope:
            self._roles.require(Role.MANAGEMENT, caller)

            param_fields = {f.name for f in dataclasses.fields(SwapParameters)}
            param_changes = {k: v for k, v in changes.items() if k in param_fields}
            candidate = dataclasses.replace(self._params, **param_changes)
            candidate.validate()
            self._params = candidate

            if "open_deposits" in changes:
                self._gate.open_deposits = changes["open_deposits"]
            if "open_withdrawals" in changes:
                self._gate.open_withdrawals = changes["open_withdrawals"]
            if changes:
                scope.emit(self._event(StrategyEventType.CONFIG_UPDATE, changes))

            for depositor in update.allow_list_additions:
                if self._gate.allow_list.add(depositor):
                    scope.emit(self._event(StrategyEventType.ALLOW_LIST_GRANT, {"depositor": depositor}))

    # --------------------------------------------------------
    # VIEWS
    # --------------------------------------------------------

    def balance_of_asset(self) -> Decimal:
        return self._transaction.committed_balance(self.asset, self._address)

    def balance_of_principal(self) -> Decimal:
        return self._transaction.committed_balance(self.binding.principal, self._address)

    def balance_of_intermediary(self) -> Decimal:
        return self._transaction.committed_balance(self.intermediary, self._address)

    def balance_of_wrapper(self) -> Decimal:
        return self._transaction.committed_balance(self.binding.wrapper, self._address)

    async def should_tend(self) -> TendTrigger:
        """Advisory tend signal for an external scheduler, read from committed state."""
        async with self._transaction.read():
            is_shutdown = await self._is_shutdown()
            total_value = ZERO
            if not is_shutdown:
                if self._accounting is not None:
                    total_value = await self._accounting.total_assets()
                else:
                    total_value = (await self._valuator.total_value()).total_assets

            trigger = await self._tend.should_tend(self._params, is_shutdown, total_value)
            binding = self.binding

        if trigger.reason == "market expired" and binding.market_address not in self._expiry_alerted:
            self._expiry_alerted.add(binding.market_address)
            await self._send_alert(create_market_expired_alert(
                self._address, binding.market_address, binding.expiry,
            ))

        logger.debug(f"should_tend={trigger.should_tend}: {trigger.reason}")
        return trigger

    async def lifecycle_state(self) -> LifecycleState:
        async with self._transaction.read():
            return self._lifecycle.state(await self._is_shutdown())

    async def status(self) -> StrategyStatus:
        async with self._transaction.read():
            return await self._status()

    async def _status(self) -> StrategyStatus:
        binding = self.binding
        return StrategyStatus(
            address=self._address,
            asset=self.asset,
            intermediary=self.intermediary,
            lifecycle_state=self._lifecycle.state(await self._is_shutdown()).value,
            market=MarketStatus(**binding.to_dict()),
            asset_balance=self.balance_of_asset(),
            intermediary_balance=self.balance_of_intermediary(),
            principal_balance=self.balance_of_principal(),
            wrapper_balance=self.balance_of_wrapper(),
            max_intermediary_per_tend=self._params.max_intermediary_per_tend,
            min_swap_interval=self._params.min_swap_interval,
            last_swap_timestamp=self._params.last_swap_timestamp,
            min_amount_to_sell=self._params.min_amount_to_sell,
            min_amount_to_trigger=self._params.min_amount_to_trigger,
            swap_slippage_bps=self._params.swap_slippage_bps,
            open_deposits=self._gate.open_deposits,
            open_withdrawals=self._gate.open_withdrawals,
            allow_list_size=len(self._gate.allow_list),
            auction=self._auction.address if self._auction else None,
            rollovers=len(self._lifecycle.history),
        )

    # --------------------------------------------------------
    # SNAPSHOT
    # --------------------------------------------------------

    def snapshot(self) -> Tuple[SwapParameters, Optional[AuctionAdapter]]:
        return dataclasses.replace(self._params), self._auction

    def restore(self, snapshot: Tuple[SwapParameters, Optional[AuctionAdapter]]) -> None:
        params, self._auction = snapshot
        self._params = dataclasses.replace(params)

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    def _current_binding(self) -> MarketBinding:
        return self._lifecycle.binding

    async def _is_shutdown(self) -> bool:
        if self._accounting is None:
            return False
        return await self._accounting.is_shutdown()

    async def _free_funds(self, amount: Decimal) -> FreeFundsResult:
        idle_before = self.balance_of_asset()
        if amount == 0:
            return FreeFundsResult(amount, ZERO, ZERO, ZERO, ZERO)

        if self._accounting is not None:
            total = await self._accounting.total_assets()
        else:
            total = (await self._valuator.total_value()).total_assets
        deployed = total - idle_before
        if deployed <= 0:
            logger.debug(f"free_funds({amount}): nothing deployed")
            return FreeFundsResult(amount, ZERO, ZERO, ZERO, ZERO)

        fraction = min(Decimal("1"), amount / deployed)
        bps = self._params.swap_slippage_bps

        principal = round_down(self.balance_of_principal() * fraction)
        loose = ZERO
        if not self._converter.is_identity:
            loose = round_down(self.balance_of_intermediary() * fraction)

        wrapped = round_down(self.balance_of_wrapper() * fraction)
        redemption = await self._engine.redeem_wrapper(wrapped, bps)
        sale = await self._engine.sell_principal(principal, bps)
        received = loose + redemption.amount_out + sale.amount_out
        to_unwrap = received if not self._converter.is_identity else ZERO
        await self._engine.intermediary_to_asset(to_unwrap)

        freed = self.balance_of_asset() - idle_before
        logger.info(
            f"Freed {freed} {self.asset} for {amount} requested "
            f"(fraction {fraction}, sold {sale.amount_in} principal)"
        )
        return FreeFundsResult(
            requested=amount,
            fraction=fraction,
            principal_sold=sale.amount_in,
            intermediary_converted=received,
            asset_freed=freed,
            wrapper_redeemed=redemption.amount_in,
        )

    async def _update_params(self, caller: str, **changes: Any) -> None:
        name = next(iter(changes))
        async with self._entry(f"set_{name}") as scope:
            self._roles.require(Role.MANAGEMENT, caller)
            candidate = dataclasses.replace(self._params, **changes)
            candidate.validate()
            self._params = candidate
            scope.emit(self._event(StrategyEventType.CONFIG_UPDATE, changes))
        logger.info(f"Updated swap parameters: {changes}")

    @asynccontextmanager
    async def _entry(self, operation: str) -> AsyncIterator[TransactionScope]:
        try:
            async with self._transaction.atomic(operation) as scope:
                yield scope
        except Exception as e:
            if self._config.alerting.alert_on_failure:
                await self._send_alert(create_operation_failed_alert(
                    operation, e, self._address, self.binding.market_address,
                ))
            raise

    async def _send_alert(self, alert: Alert) -> None:
        if self._on_alert is None or not self._config.alerting.enabled:
            return
        try:
            await self._on_alert(alert)
        except Exception as e:
            logger.error(f"Failed to send alert: {e}")

    def _event(self, event_type: StrategyEventType, details: Dict[str, Any]) -> StrategyEvent:
        return StrategyEvent(
            event_type=event_type,
            strategy_address=self._address,
            market_address=self.binding.market_address,
            timestamp=self._clock.now(),
            details=dict(details),
        )

    @staticmethod
    def _check_amount(amount: Decimal, allow_unlimited: bool = False) -> None:
        if amount.is_nan() or amount < 0 or (amount.is_infinite() and not allow_unlimited):
            raise ValidationError(f"Invalid amount: {amount}", code="VAL_INVALID_AMOUNT")
