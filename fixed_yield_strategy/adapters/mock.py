"""
Fixed Yield Strategy - Mock Adapters.

============================================================
PURPOSE
============================================================
In-memory collaborators backed by the TokenLedger, for tests
and dry runs.

FEATURES:
- Configurable principal price and swap fee
- Par redemption after maturity
- Configurable oracle readiness
- Error injection on the next swap
- Full swap history

PRICING:
    Principal is priced in intermediary units. One principal
    redeems for one intermediary unit at maturity.

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Dict, List, Iterable

from ..clock import ClockProtocol
from ..ledger import TokenLedger
from ..types import (
    MAX_BPS,
    ZERO,
    UNLIMITED,
    round_down,
    MarketTokens,
    WrapperTokens,
    OracleReadiness,
    StrategyError,
    ValidationError,
    StalenessError,
    MarketStateError,
    ExecutionError,
)
from ..errors import get_error_info, ErrorCategory
from .base import (
    MarketAdapter,
    PriceOracleAdapter,
    AuctionAdapter,
    ShareVaultAdapter,
    SwapRequest,
    SwapResponse,
)


logger = logging.getLogger(__name__)


_ERROR_CLASSES = {
    ErrorCategory.VALIDATION: ValidationError,
    ErrorCategory.STALENESS: StalenessError,
    ErrorCategory.MARKET_STATE: MarketStateError,
    ErrorCategory.EXECUTION: ExecutionError,
}


def _injected_error(code: str) -> StrategyError:
    info = get_error_info(code)
    error_class = _ERROR_CLASSES.get(info.category, ExecutionError)
    return error_class(f"Injected error: {info.description}", code=code)


# ============================================================
# MOCK MARKET
# ============================================================

@dataclass
class MockMarketConfig:
    """Configuration for mock market."""

    principal_price: Decimal = Decimal("0.95")
    """Intermediary units per principal before maturity."""

    fee_bps: int = 0
    """Swap fee in basis points, charged on output."""

    wrapper_rate: Decimal = Decimal("1")
    """Output tokens per wrapper on redemption."""

    latency_seconds: float = 0.0
    """Simulated latency per call."""


class MockMarket(MarketAdapter):
    """
    Mock fixed-maturity market.

    Pulls input tokens through the router allowance, mints
    principal on buys and burns it on sells.
    """

    def __init__(
        self,
        ledger: TokenLedger,
        clock: ClockProtocol,
        address: str,
        tokens: MarketTokens,
        expiry: int,
        tokens_in: Iterable[str],
        tokens_out: Optional[Iterable[str]] = None,
        router_address: str = "router",
        config: Optional[MockMarketConfig] = None,
    ):
        self._ledger = ledger
        self._clock = clock
        self._address = address
        self._tokens = tokens
        self._expiry = expiry
        self._wrapper_tokens = WrapperTokens(
            tokens_in=frozenset(tokens_in),
            tokens_out=frozenset(tokens_out if tokens_out is not None else tokens_in),
        )
        self._router_address = router_address
        self._config = config or MockMarketConfig()
        self._principal_price = self._config.principal_price
        self._wrapper_rate = self._config.wrapper_rate

        self._pending_rewards: Dict[str, Decimal] = {}
        self._force_next_error: Optional[str] = None
        self._swaps: List[SwapRequest] = []

    @property
    def address(self) -> str:
        return self._address

    @property
    def router_address(self) -> str:
        return self._router_address

    @property
    def principal_price(self) -> Decimal:
        """Current intermediary per principal, par once matured."""
        if self._is_expired():
            return Decimal("1")
        return self._principal_price

    # --------------------------------------------------------
    # MARKET READS
    # --------------------------------------------------------

    async def read_tokens(self) -> MarketTokens:
        await self._simulate_latency()
        return self._tokens

    async def read_wrapper_tokens(self) -> WrapperTokens:
        await self._simulate_latency()
        return self._wrapper_tokens

    async def expiry(self) -> int:
        await self._simulate_latency()
        return self._expiry

    # --------------------------------------------------------
    # SWAPS
    # --------------------------------------------------------

    async def swap_token_for_principal(self, request: SwapRequest) -> SwapResponse:
        await self._simulate_latency()
        self._raise_injected()

        if self._is_expired():
            raise MarketStateError("Cannot buy principal after maturity", code="MKT_EXPIRED")
        if request.token_in not in self._wrapper_tokens.tokens_in:
            raise ValidationError(
                f"{request.token_in} is not a wrapper input",
                code="VAL_UNSUPPORTED_CONVERSION",
            )

        gross = request.amount_in / self._principal_price
        fee = round_down(gross * self._config.fee_bps / MAX_BPS)
        amount_out = round_down(gross - fee)
        self._check_min_out(amount_out, request)

        self._ledger.transfer_from(
            request.token_in, self._router_address, request.sender, self._address, request.amount_in,
        )
        self._ledger.mint(self._tokens.principal, request.receiver, amount_out)
        self._swaps.append(request)
        return SwapResponse(amount_out=amount_out, fee=fee)

    async def swap_principal_for_token(self, request: SwapRequest) -> SwapResponse:
        await self._simulate_latency()
        self._raise_injected()

        if request.token_out not in self._wrapper_tokens.tokens_out:
            raise ValidationError(
                f"{request.token_out} is not a wrapper output",
                code="VAL_UNSUPPORTED_CONVERSION",
            )

        redeemed = self._is_expired()
        if redeemed:
            fee = ZERO
            amount_out = round_down(request.amount_in)
        else:
            gross = request.amount_in * self._principal_price
            fee = round_down(gross * self._config.fee_bps / MAX_BPS)
            amount_out = round_down(gross - fee)
        self._check_min_out(amount_out, request)

        self._ledger.transfer_from(
            self._tokens.principal, self._router_address, request.sender, self._address, request.amount_in,
        )
        self._ledger.burn(self._tokens.principal, self._address, request.amount_in)
        self._ledger.mint(request.token_out, request.receiver, amount_out)
        self._swaps.append(request)
        return SwapResponse(amount_out=amount_out, fee=fee, redeemed_at_maturity=redeemed)

    async def preview_redeem_wrapper(self, token_out: str, amount: Decimal) -> Decimal:
        await self._simulate_latency()
        return round_down(amount * self._wrapper_rate)

    async def redeem_wrapper(self, request: SwapRequest) -> SwapResponse:
        await self._simulate_latency()
        self._raise_injected()

        if request.token_out not in self._wrapper_tokens.tokens_out:
            raise ValidationError(
                f"{request.token_out} is not a wrapper output",
                code="VAL_UNSUPPORTED_CONVERSION",
            )

        amount_out = round_down(request.amount_in * self._wrapper_rate)
        self._check_min_out(amount_out, request)

        self._ledger.burn(self._tokens.wrapper, request.sender, request.amount_in)
        self._ledger.mint(request.token_out, request.receiver, amount_out)
        self._swaps.append(request)
        return SwapResponse(amount_out=amount_out)

    async def redeem_rewards(self, receiver: str) -> Dict[str, Decimal]:
        await self._simulate_latency()
        claimed = dict(self._pending_rewards)
        self._pending_rewards.clear()
        for token, amount in claimed.items():
            self._ledger.mint(token, receiver, amount)
        return claimed

    # --------------------------------------------------------
    # TEST HELPERS
    # --------------------------------------------------------

    def set_principal_price(self, price: Decimal) -> None:
        """Set pre-maturity principal price for testing."""
        self._principal_price = price

    def set_expiry(self, expiry: int) -> None:
        self._expiry = expiry

    def set_wrapper_rate(self, rate: Decimal) -> None:
        self._wrapper_rate = rate

    def accrue_rewards(self, token: str, amount: Decimal) -> None:
        """Queue reward tokens for the next redeem_rewards call."""
        self._pending_rewards[token] = self._pending_rewards.get(token, ZERO) + amount

    def inject_error(self, error_code: str) -> None:
        """Inject error for next swap."""
        self._force_next_error = error_code

    def get_swaps(self) -> List[SwapRequest]:
        return list(self._swaps)

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    def _is_expired(self) -> bool:
        return self._clock.now() >= self._expiry

    def _raise_injected(self) -> None:
        if self._force_next_error:
            code = self._force_next_error
            self._force_next_error = None
            raise _injected_error(code)

    @staticmethod
    def _check_min_out(amount_out: Decimal, request: SwapRequest) -> None:
        if amount_out < request.min_amount_out:
            raise ExecutionError(
                f"Output {amount_out} below minimum {request.min_amount_out}",
                code="EXE_SLIPPAGE_EXCEEDED",
                details={
                    "token_in": request.token_in,
                    "token_out": request.token_out,
                    "amount_in": str(request.amount_in),
                },
            )

    async def _simulate_latency(self) -> None:
        await asyncio.sleep(self._config.latency_seconds)


# ============================================================
# MOCK ORACLE
# ============================================================

class MockOracle(PriceOracleAdapter):
    """
    Mock TWAP oracle.

    Serves a fixed rate per market, or the live price of a linked
    MockMarket. Raises StalenessError while a market is not ready.
    """

    def __init__(self, default_rate: Decimal = Decimal("0.95")):
        self._default_rate = default_rate
        self._rates: Dict[str, Decimal] = {}
        self._linked: Dict[str, MockMarket] = {}
        self._readiness: Dict[str, OracleReadiness] = {}
        self.rate_queries = 0

    async def get_principal_to_asset_rate(self, market: str, duration: int) -> Decimal:
        self.rate_queries += 1
        readiness = self._readiness.get(market)
        if readiness is not None and not readiness.is_ready:
            raise StalenessError(
                f"Oracle for {market} cannot serve a {duration}s TWAP",
                code="STL_OBSERVATION_WINDOW_UNSATISFIED",
            )
        if market in self._linked:
            return self._linked[market].principal_price
        return self._rates.get(market, self._default_rate)

    async def get_oracle_state(self, market: str, duration: int) -> OracleReadiness:
        return self._readiness.get(market, OracleReadiness(
            increase_cardinality_required=False,
            cardinality_required=duration // 12 + 1,
            oldest_observation_satisfied=True,
        ))

    # --------------------------------------------------------
    # TEST HELPERS
    # --------------------------------------------------------

    def set_rate(self, market: str, rate: Decimal) -> None:
        self._rates[market] = rate

    def link_market(self, market: MockMarket) -> None:
        """Serve the live price of market."""
        self._linked[market.address] = market

    def unlink_market(self, address: str) -> None:
        self._linked.pop(address, None)

    def set_readiness(self, market: str, readiness: OracleReadiness) -> None:
        self._readiness[market] = readiness

    def set_ready(self, market: str) -> None:
        self._readiness.pop(market, None)


# ============================================================
# MOCK AUCTION
# ============================================================

class MockAuction(AuctionAdapter):
    """Mock reward auction."""

    def __init__(self, ledger: TokenLedger, address: str, receiver: str, want: str):
        self._ledger = ledger
        self._address = address
        self._receiver = receiver
        self._want = want
        self.kicked: Dict[str, Decimal] = {}

    @property
    def address(self) -> str:
        return self._address

    async def receiver(self) -> str:
        return self._receiver

    async def want(self) -> str:
        return self._want

    async def kick(self, token: str) -> Decimal:
        available = self._ledger.balance_of(token, self._address)
        if available == 0:
            raise ExecutionError(f"Nothing to kick for {token}", code="EXE_NOTHING_TO_KICK")
        self.kicked[token] = available
        logger.info(f"Auction {self._address} kicked {available} {token}")
        return available


# ============================================================
# MOCK SHARE VAULT
# ============================================================

class MockShareVault(ShareVaultAdapter):
    """
    Mock yield-bearing share vault.

    The vault address is the share token. Redemptions above the
    held assets are minted, standing in for accrued yield.
    """

    def __init__(
        self,
        ledger: TokenLedger,
        address: str,
        asset: str,
        share_price: Decimal = Decimal("1"),
    ):
        self._ledger = ledger
        self._address = address
        self._asset = asset
        self._share_price = share_price

    @property
    def address(self) -> str:
        return self._address

    @property
    def asset(self) -> str:
        return self._asset

    async def deposit(self, assets: Decimal, receiver: str, owner: str) -> Decimal:
        shares = round_down(assets / self._share_price)
        self._ledger.transfer_from(self._asset, self._address, owner, self._address, assets)
        self._ledger.mint(self._address, receiver, shares)
        return shares

    async def redeem(self, shares: Decimal, receiver: str, owner: str) -> Decimal:
        assets = round_down(shares * self._share_price)
        self._ledger.burn(self._address, owner, shares)
        held = self._ledger.balance_of(self._asset, self._address)
        paid = min(held, assets)
        self._ledger.transfer(self._asset, self._address, receiver, paid)
        if assets > paid:
            self._ledger.mint(self._asset, receiver, assets - paid)
        return assets

    async def convert_to_assets(self, shares: Decimal) -> Decimal:
        if shares == UNLIMITED:
            return UNLIMITED
        return round_down(shares * self._share_price)

    def set_share_price(self, price: Decimal) -> None:
        self._share_price = price
