"""
Fixed Yield Strategy - Adapters Package.

============================================================
PURPOSE
============================================================
External collaborator interfaces and in-memory implementations.

INTERFACES:
- MarketAdapter: Fixed-maturity market and router
- PriceOracleAdapter: TWAP oracle
- AuctionAdapter: Reward auction
- ShareVaultAdapter: Yield-bearing share vault
- AccountingView: Accounting layer read view

MOCKS:
- MockMarket, MockOracle, MockAuction, MockShareVault

============================================================
"""

# Base types
from .base import (
    MarketAdapter,
    PriceOracleAdapter,
    AuctionAdapter,
    ShareVaultAdapter,
    AccountingView,
    SwapRequest,
    SwapResponse,
    describe_adapter,
)

# Mocks
from .mock import (
    MockMarket,
    MockMarketConfig,
    MockOracle,
    MockAuction,
    MockShareVault,
)


__all__ = [
    # Base
    "MarketAdapter",
    "PriceOracleAdapter",
    "AuctionAdapter",
    "ShareVaultAdapter",
    "AccountingView",
    "SwapRequest",
    "SwapResponse",
    "describe_adapter",
    # Mocks
    "MockMarket",
    "MockMarketConfig",
    "MockOracle",
    "MockAuction",
    "MockShareVault",
]
