"""
Fixed Yield Strategy - Error Taxonomy.

============================================================
PURPOSE
============================================================
Classification of every failure the strategy can report.

ERROR CATEGORIES:
1. Validation Errors - Bad pairing, wrapper mismatch, bad parameters
2. Staleness Errors - Oracle history not ready
3. Authorization Errors - Wrong caller role
4. Market State Errors - Expired when active required, or vice versa
5. Execution Errors - Market could not fill within bounds

RETRYABLE vs NON-RETRYABLE:
- Retryable: Staleness and fill failures, safe on a later call
- Non-retryable: Everything else, needs operator action

No error is fatal: every failure leaves prior state intact.

============================================================
"""

from enum import Enum
from typing import Dict, Set
from dataclasses import dataclass


# ============================================================
# ERROR CATEGORIES
# ============================================================

class ErrorCategory(Enum):
    """Error category classification."""

    VALIDATION = "VALIDATION"
    """Rejected before any state mutation."""

    STALENESS = "STALENESS"
    """Oracle not ready, operator must grow history."""

    AUTHORIZATION = "AUTHORIZATION"
    """Caller lacks the required role."""

    MARKET_STATE = "MARKET_STATE"
    """Lifecycle violation."""

    EXECUTION = "EXECUTION"
    """External market or token movement failed."""

    INTERNAL = "INTERNAL"
    """Internal system error."""


class ErrorSeverity(Enum):
    """Error severity levels."""

    WARNING = "WARNING"
    """Non-critical, informational."""

    ERROR = "ERROR"
    """Standard error, needs attention."""

    CRITICAL = "CRITICAL"
    """Critical error, operator should look now."""


# ============================================================
# ERROR CODE REGISTRY
# ============================================================

@dataclass
class ErrorCodeInfo:
    """Information about an error code."""

    code: str
    """Error code."""

    category: ErrorCategory
    """Error category."""

    severity: ErrorSeverity
    """Error severity."""

    is_retryable: bool
    """Whether a later call may succeed without operator action."""

    description: str
    """Human-readable description."""

    recommended_action: str
    """Recommended action to take."""


ERROR_CODES: Dict[str, ErrorCodeInfo] = {
    # ========== VALIDATION ERRORS ==========
    "VAL_WRAPPER_MISMATCH": ErrorCodeInfo(
        code="VAL_WRAPPER_MISMATCH",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Market wrapper differs from the wrapper fixed at construction",
        recommended_action="Pick a successor market of the same wrapper family",
    ),
    "VAL_INTERMEDIARY_NOT_ADMISSIBLE": ErrorCodeInfo(
        code="VAL_INTERMEDIARY_NOT_ADMISSIBLE",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Intermediary asset is not a wrapper input and output",
        recommended_action="Verify the market and intermediary pairing",
    ),
    "VAL_INVALID_SLIPPAGE": ErrorCodeInfo(
        code="VAL_INVALID_SLIPPAGE",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Slippage tolerance outside 0..10000 bps",
        recommended_action="Use a value of at most 10000",
    ),
    "VAL_INVALID_AMOUNT": ErrorCodeInfo(
        code="VAL_INVALID_AMOUNT",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Amount is negative or not a number",
        recommended_action="Pass a non-negative amount",
    ),
    "VAL_INVALID_CONFIG": ErrorCodeInfo(
        code="VAL_INVALID_CONFIG",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Configuration or management update is invalid",
        recommended_action="Fix the offending field",
    ),
    "VAL_UNSUPPORTED_CONVERSION": ErrorCodeInfo(
        code="VAL_UNSUPPORTED_CONVERSION",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Token pair is not a supported conversion",
        recommended_action="Route through the intermediary asset",
    ),
    "VAL_FORBIDDEN_TOKEN": ErrorCodeInfo(
        code="VAL_FORBIDDEN_TOKEN",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Token is core-managed and cannot be auctioned",
        recommended_action="Only kick non-core reward tokens",
    ),
    "VAL_NO_AUCTION_CONFIGURED": ErrorCodeInfo(
        code="VAL_NO_AUCTION_CONFIGURED",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="No auction has been set",
        recommended_action="Set an auction before kicking",
    ),
    "VAL_AUCTION_MISMATCH": ErrorCodeInfo(
        code="VAL_AUCTION_MISMATCH",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Auction receiver or want token does not match the strategy",
        recommended_action="Deploy an auction for this strategy and asset",
    ),

    # ========== STALENESS ERRORS ==========
    "STL_MARKET_NOT_READY": ErrorCodeInfo(
        code="STL_MARKET_NOT_READY",
        category=ErrorCategory.STALENESS,
        severity=ErrorSeverity.WARNING,
        is_retryable=True,
        description="Oracle needs more observation cardinality",
        recommended_action="Increase observation cardinality and retry",
    ),
    "STL_OBSERVATION_WINDOW_UNSATISFIED": ErrorCodeInfo(
        code="STL_OBSERVATION_WINDOW_UNSATISFIED",
        category=ErrorCategory.STALENESS,
        severity=ErrorSeverity.WARNING,
        is_retryable=True,
        description="Oldest oracle observation does not span the TWAP window",
        recommended_action="Wait for the window to fill and retry",
    ),

    # ========== AUTHORIZATION ERRORS ==========
    "AUT_NOT_GOVERNANCE": ErrorCodeInfo(
        code="AUT_NOT_GOVERNANCE",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Caller is not governance",
        recommended_action="Call from the governance address",
    ),
    "AUT_NOT_MANAGEMENT": ErrorCodeInfo(
        code="AUT_NOT_MANAGEMENT",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Caller is not management",
        recommended_action="Call from the management address",
    ),
    "AUT_NOT_KEEPER": ErrorCodeInfo(
        code="AUT_NOT_KEEPER",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Caller is neither keeper nor management",
        recommended_action="Call from a keeper address",
    ),
    "AUT_NOT_EMERGENCY_AUTHORIZED": ErrorCodeInfo(
        code="AUT_NOT_EMERGENCY_AUTHORIZED",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Caller is neither emergency admin nor management",
        recommended_action="Call from the emergency admin address",
    ),

    # ========== MARKET STATE ERRORS ==========
    "MKT_EXPIRED": ErrorCodeInfo(
        code="MKT_EXPIRED",
        category=ErrorCategory.MARKET_STATE,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Market is past maturity",
        recommended_action="Bind an unexpired market",
    ),
    "MKT_NOT_EXPIRED": ErrorCodeInfo(
        code="MKT_NOT_EXPIRED",
        category=ErrorCategory.MARKET_STATE,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Market has not reached maturity",
        recommended_action="Wait for expiry before rolling over",
    ),
    "MKT_NOT_SHUTDOWN": ErrorCodeInfo(
        code="MKT_NOT_SHUTDOWN",
        category=ErrorCategory.MARKET_STATE,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Strategy is not shut down",
        recommended_action="Shut the strategy down first",
    ),
    "MKT_SHUTDOWN": ErrorCodeInfo(
        code="MKT_SHUTDOWN",
        category=ErrorCategory.MARKET_STATE,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Strategy is shut down",
        recommended_action="Use emergency withdrawal to unwind",
    ),

    # ========== EXECUTION ERRORS ==========
    "EXE_SLIPPAGE_EXCEEDED": ErrorCodeInfo(
        code="EXE_SLIPPAGE_EXCEEDED",
        category=ErrorCategory.EXECUTION,
        severity=ErrorSeverity.ERROR,
        is_retryable=True,
        description="Market could not fill at the minimum output",
        recommended_action="Retry on a later call or widen slippage",
    ),
    "EXE_INSUFFICIENT_BALANCE": ErrorCodeInfo(
        code="EXE_INSUFFICIENT_BALANCE",
        category=ErrorCategory.EXECUTION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Holder balance is below the transfer amount",
        recommended_action="Reconcile balances",
    ),
    "EXE_INSUFFICIENT_ALLOWANCE": ErrorCodeInfo(
        code="EXE_INSUFFICIENT_ALLOWANCE",
        category=ErrorCategory.EXECUTION,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description="Spender allowance is below the transfer amount",
        recommended_action="Re-bind the market to refresh allowances",
    ),
    "EXE_NOTHING_TO_KICK": ErrorCodeInfo(
        code="EXE_NOTHING_TO_KICK",
        category=ErrorCategory.EXECUTION,
        severity=ErrorSeverity.WARNING,
        is_retryable=False,
        description="Auction has no balance of the token",
        recommended_action="Wait for rewards to accrue",
    ),
    "EXE_MARKET_UNAVAILABLE": ErrorCodeInfo(
        code="EXE_MARKET_UNAVAILABLE",
        category=ErrorCategory.EXECUTION,
        severity=ErrorSeverity.ERROR,
        is_retryable=True,
        description="Market rejected the request",
        recommended_action="Retry on a later call",
    ),

    # ========== INTERNAL ERRORS ==========
    "INT_UNEXPECTED_ERROR": ErrorCodeInfo(
        code="INT_UNEXPECTED_ERROR",
        category=ErrorCategory.INTERNAL,
        severity=ErrorSeverity.CRITICAL,
        is_retryable=False,
        description="Unexpected internal error",
        recommended_action="Investigate error logs",
    ),
}


def get_error_info(code: str) -> ErrorCodeInfo:
    """
    Get error info for a code.

    Args:
        code: Error code

    Returns:
        ErrorCodeInfo or default unknown error
    """
    return ERROR_CODES.get(code, ErrorCodeInfo(
        code=code,
        category=ErrorCategory.INTERNAL,
        severity=ErrorSeverity.ERROR,
        is_retryable=False,
        description=f"Unknown error: {code}",
        recommended_action="Investigate error",
    ))


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    return get_error_info(code).is_retryable


# ============================================================
# ERROR SETS
# ============================================================

RETRYABLE_ERROR_CODES: Set[str] = {
    code for code, info in ERROR_CODES.items() if info.is_retryable
}

CRITICAL_ERROR_CODES: Set[str] = {
    code for code, info in ERROR_CODES.items()
    if info.severity == ErrorSeverity.CRITICAL
}
