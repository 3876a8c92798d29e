"""
Fixed Yield Strategy - Types.

============================================================
PURPOSE
============================================================
All type definitions for the Fixed Yield Strategy.

CRITICAL PRINCIPLE:
    "Every swap is bounded by a live price check."
    "Every entry point commits fully or not at all."

AMOUNTS:
    Token amounts are Decimal token units, rounded down to
    TOKEN_DECIMALS places. UNLIMITED (Decimal Infinity) means
    "no cap" for limits and "everything" for unwind amounts.

============================================================
"""

from datetime import datetime
from typing import Optional, Dict, Any, Tuple, FrozenSet, TYPE_CHECKING
from dataclasses import dataclass, field
from decimal import Decimal, Context, ROUND_DOWN
from enum import Enum
import uuid

from .errors import get_error_info, ErrorCodeInfo

if TYPE_CHECKING:
    from .adapters.base import MarketAdapter


# ============================================================
# CONSTANTS
# ============================================================

UNLIMITED = Decimal("Infinity")
"""No cap (limits, per-tend maximum) and unwind-everything sentinel."""

MAX_BPS = 10_000
"""100% in basis points."""

TOKEN_DECIMALS = 18
"""Decimal places kept for token amounts."""

DEFAULT_TWAP_DURATION_SECONDS = 1800
"""Oracle time-weighted-average window (30 minutes)."""

ZERO = Decimal("0")

_QUANTUM = Decimal(1).scaleb(-TOKEN_DECIMALS)
_WIDE_CONTEXT = Context(prec=80)


def round_down(amount: Decimal) -> Decimal:
    """Truncate an amount to token precision. Infinite values pass through."""
    if not amount.is_finite():
        return amount
    return amount.quantize(_QUANTUM, rounding=ROUND_DOWN, context=_WIDE_CONTEXT)


# ============================================================
# ROLES AND LIFECYCLE
# ============================================================

class Role(Enum):
    """Caller roles recognised by the strategy."""

    MANAGEMENT = "MANAGEMENT"
    """Configures parameters, auction, allow-list."""

    KEEPER = "KEEPER"
    """Triggers tend and auction kicks."""

    EMERGENCY_ADMIN = "EMERGENCY_ADMIN"
    """Unwinds the position after shutdown."""

    GOVERNANCE = "GOVERNANCE"
    """Rolls the strategy into a successor market."""


class LifecycleState(Enum):
    """
    Strategy lifecycle state, derived on demand.

    State Machine:

        ACTIVE ──(expiry passes)──► EXPIRED
           ▲                           │
           └───────(rollover)──────────┘

        Any state ──(accounting shutdown)──► SHUT_DOWN

    SHUT_DOWN is irreversible and orthogonal to expiry.
    """

    ACTIVE = "ACTIVE"
    """Bound market not yet expired."""

    EXPIRED = "EXPIRED"
    """Bound market past maturity."""

    SHUT_DOWN = "SHUT_DOWN"
    """Accounting layer has shut the strategy down."""


class StrategyEventType(Enum):
    """Committed strategy events."""

    MARKET_BOUND = "MARKET_BOUND"
    TEND = "TEND"
    REPORT = "REPORT"
    FREE_FUNDS = "FREE_FUNDS"
    ROLLOVER = "ROLLOVER"
    EMERGENCY_WITHDRAW = "EMERGENCY_WITHDRAW"
    AUCTION_KICK = "AUCTION_KICK"
    CONFIG_UPDATE = "CONFIG_UPDATE"
    ALLOW_LIST_GRANT = "ALLOW_LIST_GRANT"


# ============================================================
# MARKET TYPES
# ============================================================

@dataclass(frozen=True)
class MarketTokens:
    """The three instruments of a market."""

    wrapper: str
    """Standardized wrapper (SY) address."""

    principal: str
    """Principal instrument (PT) address."""

    yield_token: str
    """Yield instrument (YT) address."""


@dataclass(frozen=True)
class WrapperTokens:
    """Tokens admissible as wrapper input and output."""

    tokens_in: FrozenSet[str]
    tokens_out: FrozenSet[str]

    def admits(self, token: str) -> bool:
        """Check if token is both an admissible input and output."""
        return token in self.tokens_in and token in self.tokens_out


@dataclass(frozen=True)
class OracleReadiness:
    """Oracle readiness for a market and TWAP window."""

    increase_cardinality_required: bool
    """Whether the observation buffer must grow first."""

    cardinality_required: int
    """Observation cardinality the window needs."""

    oldest_observation_satisfied: bool
    """Whether the oldest observation spans the window."""

    @property
    def is_ready(self) -> bool:
        return not self.increase_cardinality_required and self.oldest_observation_satisfied


@dataclass(frozen=True)
class MarketBinding:
    """
    The currently bound market.

    Replaced wholesale on rollover. The wrapper never changes
    after construction.
    """

    market: "MarketAdapter"
    market_address: str
    principal: str
    wrapper: str
    yield_token: str
    expiry: int
    """Maturity as unix timestamp."""

    bound_at: int
    """Unix timestamp of binding."""

    def is_expired(self, now: int) -> bool:
        """Check maturity against a timestamp."""
        return now >= self.expiry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_address": self.market_address,
            "principal": self.principal,
            "wrapper": self.wrapper,
            "yield_token": self.yield_token,
            "expiry": self.expiry,
            "bound_at": self.bound_at,
        }


# ============================================================
# SWAP PARAMETERS
# ============================================================

@dataclass
class SwapParameters:
    """
    Management-controlled swap parameters.

    INVARIANT: 0 <= swap_slippage_bps <= MAX_BPS.
    """

    max_intermediary_per_tend: Decimal = UNLIMITED
    """Cap per tend. 0 disables swapping, UNLIMITED disables the cap."""

    min_swap_interval: int = 0
    """Cooldown between tends in seconds."""

    last_swap_timestamp: int = 0
    """When the last tend ran."""

    min_amount_to_sell: Decimal = ZERO
    """Dust floor for a swap."""

    min_amount_to_trigger: Decimal = ZERO
    """Balance needed before the trigger fires."""

    swap_slippage_bps: int = 50
    """Price-impact tolerance in basis points."""

    def validate(self) -> None:
        """Raise ValidationError if any invariant is broken."""
        if not 0 <= self.swap_slippage_bps <= MAX_BPS:
            raise ValidationError(
                f"swap_slippage_bps must be within 0..{MAX_BPS}, got {self.swap_slippage_bps}",
                code="VAL_INVALID_SLIPPAGE",
            )
        for name in ("max_intermediary_per_tend", "min_amount_to_sell", "min_amount_to_trigger"):
            value = getattr(self, name)
            if value.is_nan() or value < 0:
                raise ValidationError(f"{name} must be non-negative", code="VAL_INVALID_AMOUNT")
        if self.min_swap_interval < 0:
            raise ValidationError("min_swap_interval must be non-negative", code="VAL_INVALID_CONFIG")

    def cooldown_elapsed(self, now: int) -> bool:
        return now - self.last_swap_timestamp >= self.min_swap_interval


# ============================================================
# RESULTS
# ============================================================

@dataclass
class SwapResult:
    """Outcome of one conversion."""

    token_in: str
    token_out: str
    amount_in: Decimal
    amount_out: Decimal
    min_amount_out: Decimal = ZERO

    @property
    def executed(self) -> bool:
        return self.amount_in > 0

    @classmethod
    def skipped(cls, token_in: str, token_out: str) -> "SwapResult":
        return cls(token_in=token_in, token_out=token_out, amount_in=ZERO, amount_out=ZERO)


@dataclass
class TendResult:
    """Outcome of a tend."""

    timestamp: int
    asset_converted: Decimal = ZERO
    intermediary_received: Decimal = ZERO
    intermediary_swapped: Decimal = ZERO
    principal_received: Decimal = ZERO
    skipped_reason: Optional[str] = None
    wrapper_redeemed: Decimal = ZERO


@dataclass(frozen=True)
class TendTrigger:
    """Advisory signal for an external scheduler."""

    should_tend: bool
    reason: str

    def __bool__(self) -> bool:
        return self.should_tend

    def as_tuple(self) -> Tuple[bool, bytes]:
        """Hook form: (should_tend, reason bytes)."""
        return self.should_tend, self.reason.encode("utf-8")


@dataclass
class ReportResult:
    """Breakdown of total strategy value in asset terms."""

    total_assets: Decimal
    idle_asset: Decimal
    principal_balance: Decimal
    principal_value: Decimal
    """PT priced into intermediary units."""

    intermediary_balance: Decimal
    intermediary_price: Decimal
    """Asset per one intermediary."""

    expired: bool
    timestamp: int
    rewards_claimed: Dict[str, Decimal] = field(default_factory=dict)
    wrapper_balance: Decimal = ZERO
    wrapper_value: Decimal = ZERO
    """Wrapper priced into intermediary units."""


@dataclass
class RolloverResult:
    """Outcome of a rollover."""

    old_market: str
    new_market: str
    principal_sold: Decimal
    intermediary_received: Decimal
    timestamp: int


@dataclass
class EmergencyWithdrawResult:
    """Outcome of an emergency unwind."""

    requested: Decimal
    principal_sold: Decimal
    intermediary_received: Decimal
    asset_received: Decimal
    timestamp: int
    wrapper_redeemed: Decimal = ZERO


@dataclass
class FreeFundsResult:
    """Outcome of freeing funds for a withdrawal."""

    requested: Decimal
    fraction: Decimal
    principal_sold: Decimal
    intermediary_converted: Decimal
    asset_freed: Decimal
    wrapper_redeemed: Decimal = ZERO


@dataclass
class AuctionKickResult:
    """Outcome of an auction handoff."""

    token: str
    auction: str
    amount_transferred: Decimal
    available: Decimal


@dataclass
class StrategyEvent:
    """A committed strategy event."""

    event_type: StrategyEventType
    strategy_address: str
    market_address: str
    timestamp: int
    """Strategy clock time (unix seconds)."""

    details: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    recorded_at: datetime = field(default_factory=datetime.utcnow)


# ============================================================
# EXCEPTIONS
# ============================================================

class StrategyError(Exception):
    """Base exception for the Fixed Yield Strategy."""

    default_code = "INT_UNEXPECTED_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    @property
    def info(self) -> ErrorCodeInfo:
        return get_error_info(self.code)

    @property
    def is_retryable(self) -> bool:
        return self.info.is_retryable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "retryable": self.is_retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(StrategyError):
    """Bad pairing, wrapper mismatch, or parameter out of bounds."""
    default_code = "VAL_INVALID_CONFIG"


class StalenessError(StrategyError):
    """Oracle history not ready."""
    default_code = "STL_MARKET_NOT_READY"


class AuthorizationError(StrategyError):
    """Wrong caller role."""
    default_code = "AUT_NOT_MANAGEMENT"


class MarketStateError(StrategyError):
    """Lifecycle violation."""
    default_code = "MKT_EXPIRED"


class ExecutionError(StrategyError):
    """External market or token movement failed."""
    default_code = "EXE_MARKET_UNAVAILABLE"
