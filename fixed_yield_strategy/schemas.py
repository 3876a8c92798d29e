"""
Pydantic Schemas for Fixed Yield Strategy management and status.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import MAX_BPS


# =============================================================
# MANAGEMENT UPDATE
# =============================================================

class ManagementUpdate(BaseModel):
    """Batch of management parameter changes. Unset fields are left alone."""
    model_config = ConfigDict(extra="forbid")

    max_intermediary_per_tend: Optional[Decimal] = Field(default=None, ge=0, allow_inf_nan=True)
    min_swap_interval: Optional[int] = Field(default=None, ge=0)
    min_amount_to_sell: Optional[Decimal] = Field(default=None, ge=0)
    min_amount_to_trigger: Optional[Decimal] = Field(default=None, ge=0)
    swap_slippage_bps: Optional[int] = Field(default=None, ge=0, le=MAX_BPS)
    open_deposits: Optional[bool] = None
    open_withdrawals: Optional[bool] = None
    allow_list_additions: List[str] = Field(default_factory=list)


# =============================================================
# STATUS
# =============================================================

class MarketStatus(BaseModel):
    """Bound market summary."""
    market_address: str
    principal: str
    wrapper: str
    yield_token: str
    expiry: int
    bound_at: int


class StrategyStatus(BaseModel):
    """Point-in-time view of the strategy."""
    model_config = ConfigDict(from_attributes=True)

    address: str
    asset: str
    intermediary: str
    lifecycle_state: str
    market: MarketStatus

    # Balances
    asset_balance: Decimal
    intermediary_balance: Decimal
    principal_balance: Decimal
    wrapper_balance: Decimal

    # Parameters
    max_intermediary_per_tend: Decimal = Field(allow_inf_nan=True)
    min_swap_interval: int
    last_swap_timestamp: int
    min_amount_to_sell: Decimal
    min_amount_to_trigger: Decimal
    swap_slippage_bps: int

    # Access
    open_deposits: bool
    open_withdrawals: bool
    allow_list_size: int
    auction: Optional[str] = None

    rollovers: int = 0
