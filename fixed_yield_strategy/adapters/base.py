"""
Fixed Yield Strategy - External Adapter Base.

============================================================
PURPOSE
============================================================
Abstract interfaces for every external collaborator.

COLLABORATORS:
- MarketAdapter: fixed-maturity market and its router
- PriceOracleAdapter: read-only TWAP price source
- AuctionAdapter: reward-auction sink for stray tokens
- ShareVaultAdapter: yield-bearing share vault (converter)
- AccountingView: the accounting layer, as the strategy sees it

DESIGN PRINCIPLES:
- Protocol-agnostic interface
- Clean separation from strategy logic
- Fully testable with mock adapters

============================================================
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Dict, Any

from ..types import (
    MarketTokens,
    WrapperTokens,
    OracleReadiness,
)


logger = logging.getLogger(__name__)


# ============================================================
# SWAP REQUEST/RESPONSE TYPES
# ============================================================

@dataclass
class SwapRequest:
    """Exact-input swap request against a market."""

    sender: str
    """Address the input tokens are pulled from."""

    receiver: str
    """Address the output tokens are sent to."""

    token_in: str
    """Token sold."""

    token_out: str
    """Token bought."""

    amount_in: Decimal
    """Exact input amount."""

    min_amount_out: Decimal
    """Revert unless at least this much comes out."""

    auxiliary: Dict[str, Any] = field(default_factory=dict)
    """Routing hints (approximation params, limit orders)."""


@dataclass
class SwapResponse:
    """Response from a market swap."""

    amount_out: Decimal
    """Actual amount delivered to the receiver."""

    fee: Decimal = Decimal("0")
    """Fee charged, in output units."""

    redeemed_at_maturity: bool = False
    """Whether the principal was redeemed at par instead of traded."""


# ============================================================
# MARKET ADAPTER
# ============================================================

class MarketAdapter(ABC):
    """
    Interface to a fixed-maturity market.

    Swaps MUST raise ExecutionError(EXE_SLIPPAGE_EXCEEDED) when
    min_amount_out cannot be met, before moving any token.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Market address."""
        pass

    @property
    @abstractmethod
    def router_address(self) -> str:
        """Router that pulls tokens for swaps."""
        pass

    @abstractmethod
    async def read_tokens(self) -> MarketTokens:
        """Read the wrapper, principal and yield instruments."""
        pass

    @abstractmethod
    async def read_wrapper_tokens(self) -> WrapperTokens:
        """Read tokens admissible as wrapper input and output."""
        pass

    @abstractmethod
    async def expiry(self) -> int:
        """Maturity as unix timestamp."""
        pass

    @abstractmethod
    async def swap_token_for_principal(self, request: SwapRequest) -> SwapResponse:
        """Exact-input swap of an admissible token into principal."""
        pass

    @abstractmethod
    async def swap_principal_for_token(self, request: SwapRequest) -> SwapResponse:
        """Exact-input swap of principal into an admissible token.

        After maturity this redeems at par through the wrapper.
        """
        pass

    @abstractmethod
    async def preview_redeem_wrapper(self, token_out: str, amount: Decimal) -> Decimal:
        """Amount of token_out that redeeming amount wrapper would yield."""
        pass

    @abstractmethod
    async def redeem_wrapper(self, request: SwapRequest) -> SwapResponse:
        """Burn the sender's wrapper for an admissible output token."""
        pass

    async def redeem_rewards(self, receiver: str) -> Dict[str, Decimal]:
        """Claim accrued market rewards to receiver. Returns token -> amount."""
        return {}


# ============================================================
# PRICE ORACLE ADAPTER
# ============================================================

class PriceOracleAdapter(ABC):
    """Read-only TWAP oracle for principal pricing."""

    @abstractmethod
    async def get_principal_to_asset_rate(self, market: str, duration: int) -> Decimal:
        """Asset units per one principal, averaged over duration seconds."""
        pass

    @abstractmethod
    async def get_oracle_state(self, market: str, duration: int) -> OracleReadiness:
        """Whether the oracle can serve a TWAP of duration seconds."""
        pass


# ============================================================
# AUCTION ADAPTER
# ============================================================

class AuctionAdapter(ABC):
    """Reward-auction sink."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def receiver(self) -> str:
        """Address that receives auction proceeds."""
        pass

    @abstractmethod
    async def want(self) -> str:
        """Token the auction sells for."""
        pass

    @abstractmethod
    async def kick(self, token: str) -> Decimal:
        """Start a sale of token, returning the amount available."""
        pass


# ============================================================
# SHARE VAULT ADAPTER
# ============================================================

class ShareVaultAdapter(ABC):
    """Yield-bearing share vault whose share token is the intermediary."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Vault address, which is also the share token."""
        pass

    @property
    @abstractmethod
    def asset(self) -> str:
        """Underlying asset of the vault."""
        pass

    @abstractmethod
    async def deposit(self, assets: Decimal, receiver: str, owner: str) -> Decimal:
        """Pull assets from owner, mint shares to receiver."""
        pass

    @abstractmethod
    async def redeem(self, shares: Decimal, receiver: str, owner: str) -> Decimal:
        """Burn shares of owner, send assets to receiver."""
        pass

    @abstractmethod
    async def convert_to_assets(self, shares: Decimal) -> Decimal:
        pass


# ============================================================
# ACCOUNTING VIEW
# ============================================================

class AccountingView(ABC):
    """What the strategy reads from the accounting layer."""

    @abstractmethod
    async def is_shutdown(self) -> bool:
        pass

    @abstractmethod
    async def total_assets(self) -> Decimal:
        """Total assets as last recorded by the accounting layer."""
        pass


def describe_adapter(adapter: Optional[object]) -> str:
    """Short adapter label for logs."""
    if adapter is None:
        return "none"
    address = getattr(adapter, "address", None)
    return f"{type(adapter).__name__}({address})" if address else type(adapter).__name__
