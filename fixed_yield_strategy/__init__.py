"""
Fixed Yield Strategy Package.

============================================================
PURPOSE
============================================================
Keeps depositor capital in a fixed-maturity principal
instrument and rolls it into successor markets.

CRITICAL PRINCIPLE:
    "Every swap is bounded by a live price check."
    "Every entry point commits fully or not at all."

AUTHORITY BOUNDARIES:
    Keeper:       tend, kick_auction
    Governance:   rollover
    Emergency:    emergency_withdraw (after shutdown)
    Management:   parameters, allow-list, auction

============================================================
MODULES
============================================================
- types: Constants, dataclasses, exceptions
- errors: Error taxonomy and codes
- config: Strategy configuration
- schemas: Management and status schemas
- clock: Time source
- ledger: Token balances and allowances
- transaction: Per-call atomicity
- adapters: Market, oracle, auction, vault interfaces and mocks
- market_binding: Market validation and binding
- valuation: Principal pricing
- converters: Asset <-> intermediary conversion
- conversion: Price-guarded swaps
- tend: Tend scheduler and trigger
- valuator: Report valuation
- lifecycle: Expiry, rollover, emergency unwind
- access: Roles, allow-list, limits
- auction: Reward auction handoff
- strategy: Facade
- alerting: Telegram alerts
- models: ORM models for persistence
- repository: Database operations

============================================================
"""

# ============================================================
# TYPES
# ============================================================
from .types import (
    # Constants
    UNLIMITED,
    MAX_BPS,
    TOKEN_DECIMALS,
    DEFAULT_TWAP_DURATION_SECONDS,
    round_down,
    # Enums
    Role,
    LifecycleState,
    StrategyEventType,
    # Dataclasses
    MarketTokens,
    WrapperTokens,
    OracleReadiness,
    MarketBinding,
    SwapParameters,
    SwapResult,
    TendResult,
    TendTrigger,
    ReportResult,
    RolloverResult,
    EmergencyWithdrawResult,
    FreeFundsResult,
    AuctionKickResult,
    StrategyEvent,
    # Exceptions
    StrategyError,
    ValidationError,
    StalenessError,
    AuthorizationError,
    MarketStateError,
    ExecutionError,
)

# ============================================================
# ERRORS
# ============================================================
from .errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorCodeInfo,
    ERROR_CODES,
    get_error_info,
    is_retryable,
    RETRYABLE_ERROR_CODES,
    CRITICAL_ERROR_CODES,
)

# ============================================================
# CONFIGURATION
# ============================================================
from .config import (
    SwapConfig,
    OracleConfig,
    AccessConfig,
    ReportConfig,
    StrategyAlertingConfig,
    StrategyConfig,
)
from .schemas import ManagementUpdate, MarketStatus, StrategyStatus

# ============================================================
# INFRASTRUCTURE
# ============================================================
from .clock import ClockProtocol, SystemClock, MockClock
from .ledger import TokenLedger, LedgerSnapshot
from .transaction import StrategyTransaction, TransactionScope

# ============================================================
# ADAPTERS
# ============================================================
from .adapters import (
    MarketAdapter,
    PriceOracleAdapter,
    AuctionAdapter,
    ShareVaultAdapter,
    AccountingView,
    SwapRequest,
    SwapResponse,
    MockMarket,
    MockMarketConfig,
    MockOracle,
    MockAuction,
    MockShareVault,
)

# ============================================================
# CORE COMPONENTS
# ============================================================
from .market_binding import MarketBinder
from .valuation import ValuationPolicy, OracleValuation, ParValuation
from .converters import AssetConverter, IdentityConverter, ShareTokenConverter
from .conversion import ConversionEngine
from .tend import TendScheduler
from .valuator import HarvestValuator
from .lifecycle import LifecycleController, LifecycleTransition
from .access import AllowList, RoleRegistry, AccessGate
from .auction import AuctionHandoff
from .strategy import FixedYieldStrategy

# ============================================================
# ALERTING
# ============================================================
from .alerting import (
    AlertSeverity,
    AlertType,
    Alert,
    TelegramAlerter,
    create_operation_failed_alert,
    create_market_expired_alert,
    create_rollover_alert,
    create_emergency_withdraw_alert,
    create_system_error_alert,
)

# ============================================================
# PERSISTENCE
# ============================================================
from .models import Base, StrategyEventModel, MarketBindingModel
from .repository import StrategyRepository, StrategyEventRecorder


# ============================================================
# VERSION
# ============================================================
__version__ = "1.0.0"


# ============================================================
# ALL EXPORTS
# ============================================================
__all__ = [
    # Types
    "UNLIMITED",
    "MAX_BPS",
    "TOKEN_DECIMALS",
    "DEFAULT_TWAP_DURATION_SECONDS",
    "round_down",
    "Role",
    "LifecycleState",
    "StrategyEventType",
    "MarketTokens",
    "WrapperTokens",
    "OracleReadiness",
    "MarketBinding",
    "SwapParameters",
    "SwapResult",
    "TendResult",
    "TendTrigger",
    "ReportResult",
    "RolloverResult",
    "EmergencyWithdrawResult",
    "FreeFundsResult",
    "AuctionKickResult",
    "StrategyEvent",
    "StrategyError",
    "ValidationError",
    "StalenessError",
    "AuthorizationError",
    "MarketStateError",
    "ExecutionError",
    # Errors
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorCodeInfo",
    "ERROR_CODES",
    "get_error_info",
    "is_retryable",
    "RETRYABLE_ERROR_CODES",
    "CRITICAL_ERROR_CODES",
    # Config
    "SwapConfig",
    "OracleConfig",
    "AccessConfig",
    "ReportConfig",
    "StrategyAlertingConfig",
    "StrategyConfig",
    "ManagementUpdate",
    "MarketStatus",
    "StrategyStatus",
    # Infrastructure
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "TokenLedger",
    "LedgerSnapshot",
    "StrategyTransaction",
    "TransactionScope",
    # Adapters
    "MarketAdapter",
    "PriceOracleAdapter",
    "AuctionAdapter",
    "ShareVaultAdapter",
    "AccountingView",
    "SwapRequest",
    "SwapResponse",
    "MockMarket",
    "MockMarketConfig",
    "MockOracle",
    "MockAuction",
    "MockShareVault",
    # Core
    "MarketBinder",
    "ValuationPolicy",
    "OracleValuation",
    "ParValuation",
    "AssetConverter",
    "IdentityConverter",
    "ShareTokenConverter",
    "ConversionEngine",
    "TendScheduler",
    "HarvestValuator",
    "LifecycleController",
    "LifecycleTransition",
    "AllowList",
    "RoleRegistry",
    "AccessGate",
    "AuctionHandoff",
    "FixedYieldStrategy",
    # Alerting
    "AlertSeverity",
    "AlertType",
    "Alert",
    "TelegramAlerter",
    "create_operation_failed_alert",
    "create_market_expired_alert",
    "create_rollover_alert",
    "create_emergency_withdraw_alert",
    "create_system_error_alert",
    # Persistence
    "Base",
    "StrategyEventModel",
    "MarketBindingModel",
    "StrategyRepository",
    "StrategyEventRecorder",
]
