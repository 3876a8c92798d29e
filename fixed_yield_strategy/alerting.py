"""
Fixed Yield Strategy - Alerting.

============================================================
PURPOSE
============================================================
Operator notifications for the strategy, delivered through
the Telegram Bot API.

WHAT GETS ALERTED:
- Rolled-back entry points, classified by error code
- Market maturity seen by the tend trigger
- Completed rollovers
- Emergency unwinds and auction kicks

DELIVERY RULES:
- Alerts below min_severity are dropped before anything else
- Every accepted alert enters the in-memory history, sent or not
- At most one delivery per min_interval_seconds and
  max_alerts_per_minute per rolling 60 s window

============================================================
"""

import logging
import os
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum

import aiohttp

from .config import StrategyAlertingConfig
from .errors import ErrorCategory, ErrorSeverity
from .types import StrategyError


logger = logging.getLogger(__name__)


TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
HISTORY_SIZE = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# ALERT TYPES
# ============================================================

class AlertSeverity(Enum):
    """Alert severity levels, lowest first."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return list(AlertSeverity).index(self)


class AlertType(Enum):
    """Types of alerts."""

    OPERATION_FAILED = "OPERATION_FAILED"
    """An entry point failed and was rolled back."""

    SLIPPAGE_EXCEEDED = "SLIPPAGE_EXCEEDED"
    """Market could not fill within tolerance."""

    ORACLE_NOT_READY = "ORACLE_NOT_READY"
    """Oracle cannot serve the TWAP window."""

    MARKET_EXPIRED = "MARKET_EXPIRED"
    """Bound market reached maturity."""

    ROLLOVER_COMPLETED = "ROLLOVER_COMPLETED"
    """Strategy moved to a successor market."""

    EMERGENCY_WITHDRAW = "EMERGENCY_WITHDRAW"
    """Position unwound under shutdown."""

    AUCTION_KICKED = "AUCTION_KICKED"
    """Reward tokens handed to the auction."""

    SYSTEM_ERROR = "SYSTEM_ERROR"
    """Unexpected failure outside the error registry."""


@dataclass
class Alert:
    """One operator notification."""

    alert_type: AlertType
    severity: AlertSeverity
    message: str

    details: Dict[str, Any] = field(default_factory=dict)
    """Extra key/value context rendered under the message."""

    timestamp: datetime = field(default_factory=_utcnow)

    strategy: Optional[str] = None
    market: Optional[str] = None


# ============================================================
# TELEGRAM ALERTER
# ============================================================

class TelegramAlerter:
    """
    Delivers strategy alerts to one Telegram chat.

    Credentials come from the environment variables named in
    StrategyAlertingConfig. Without them the alerter still filters
    and records alerts, it just never posts. Instances are
    awaitable callables so they can be passed as on_alert.
    """

    def __init__(self, config: Optional[StrategyAlertingConfig] = None):
        self._config = config or StrategyAlertingConfig()
        self._min_severity = AlertSeverity(self._config.min_severity)

        self._bot_token = os.environ.get(self._config.telegram_bot_token_env, "")
        self._chat_id = os.environ.get(self._config.telegram_chat_id_env, "")

        self._history: Deque[Alert] = deque(maxlen=HISTORY_SIZE)
        self._sent_at: Deque[float] = deque()
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._bot_token) and bool(self._chat_id)

    async def send_alert(self, alert: Alert) -> bool:
        """
        Filter, record and deliver alert.

        Returns:
            True only when Telegram accepted the message
        """
        if not self._config.enabled or alert.severity.rank < self._min_severity.rank:
            return False

        self._history.append(alert)

        if self._throttled():
            logger.warning(f"Throttled {alert.alert_type.value} alert: {alert.message}")
            return False

        return await self._send_telegram(alert)

    async def __call__(self, alert: Alert) -> None:
        await self.send_alert(alert)

    def get_history(self, limit: int = 10) -> List[Alert]:
        """Most recent accepted alerts, oldest first."""
        return list(self._history)[-limit:]

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    # --------------------------------------------------------
    # DELIVERY
    # --------------------------------------------------------

    async def _send_telegram(self, alert: Alert) -> bool:
        if not self.is_configured:
            logger.debug(f"No Telegram credentials, alert kept locally: {alert.message}")
            return False

        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            async with self._session.post(
                TELEGRAM_API_URL.format(token=self._bot_token),
                json={"chat_id": self._chat_id, "text": self._format_message(alert), "parse_mode": "HTML"},
            ) as response:
                if response.status != 200:
                    logger.error(f"Telegram rejected alert ({response.status}): {await response.text()}")
                    return False
        except aiohttp.ClientError as e:
            logger.error(f"Telegram delivery failed: {e}")
            return False

        self._record_sent()
        logger.info(f"Delivered {alert.severity.value} {alert.alert_type.value} alert")
        return True

    def _format_message(self, alert: Alert) -> str:
        """Render alert as Telegram HTML."""
        header = f"<b>[{alert.severity.value}] {alert.alert_type.value}</b>"
        stamp = alert.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
        parts = [header, f"<i>{stamp}</i>", "", alert.message]

        context = [
            (label, value)
            for label, value in (("Strategy", alert.strategy), ("Market", alert.market))
            if value
        ]
        if context:
            parts.append("")
            parts.extend(f"{label}: <code>{value}</code>" for label, value in context)

        if alert.details:
            parts.append("")
            parts.extend(f"- {key}: {value}" for key, value in alert.details.items())

        return "\n".join(parts)

    # --------------------------------------------------------
    # THROTTLING
    # --------------------------------------------------------

    def _throttled(self) -> bool:
        now = time.monotonic()
        while self._sent_at and now - self._sent_at[0] >= 60:
            self._sent_at.popleft()

        if self._sent_at and now - self._sent_at[-1] < self._config.min_interval_seconds:
            return True
        return len(self._sent_at) >= self._config.max_alerts_per_minute

    def _record_sent(self) -> None:
        self._sent_at.append(time.monotonic())


# ============================================================
# ALERT HELPER FUNCTIONS
# ============================================================

_ERROR_SEVERITY_MAP = {
    ErrorSeverity.WARNING: AlertSeverity.WARNING,
    ErrorSeverity.ERROR: AlertSeverity.ERROR,
    ErrorSeverity.CRITICAL: AlertSeverity.CRITICAL,
}


def create_operation_failed_alert(
    operation: str,
    error: Exception,
    strategy: str,
    market: Optional[str] = None,
) -> Alert:
    """Create an alert for a rolled-back entry point."""
    if not isinstance(error, StrategyError):
        return create_system_error_alert(f"{operation}: {error}", strategy=strategy)

    info = error.info
    if error.code == "EXE_SLIPPAGE_EXCEEDED":
        alert_type = AlertType.SLIPPAGE_EXCEEDED
    elif info.category == ErrorCategory.STALENESS:
        alert_type = AlertType.ORACLE_NOT_READY
    else:
        alert_type = AlertType.OPERATION_FAILED

    return Alert(
        alert_type=alert_type,
        severity=_ERROR_SEVERITY_MAP.get(info.severity, AlertSeverity.ERROR),
        message=f"{operation} failed: {error.message}",
        strategy=strategy,
        market=market,
        details={
            "error_code": error.code,
            "retryable": error.is_retryable,
            "recommended_action": info.recommended_action,
        },
    )


def create_market_expired_alert(strategy: str, market: str, expiry: int) -> Alert:
    """Create a market expiry alert."""
    return Alert(
        alert_type=AlertType.MARKET_EXPIRED,
        severity=AlertSeverity.WARNING,
        message=f"Market matured at {expiry}, awaiting rollover",
        strategy=strategy,
        market=market,
        details={"expiry": expiry},
    )


def create_rollover_alert(
    strategy: str,
    old_market: str,
    new_market: str,
    principal_sold: str,
) -> Alert:
    """Create a rollover completed alert."""
    return Alert(
        alert_type=AlertType.ROLLOVER_COMPLETED,
        severity=AlertSeverity.INFO,
        message=f"Rolled over from {old_market} to {new_market}",
        strategy=strategy,
        market=new_market,
        details={"old_market": old_market, "principal_sold": principal_sold},
    )


def create_emergency_withdraw_alert(
    strategy: str,
    market: str,
    principal_sold: str,
    asset_received: str,
) -> Alert:
    """Create an emergency withdraw alert."""
    return Alert(
        alert_type=AlertType.EMERGENCY_WITHDRAW,
        severity=AlertSeverity.CRITICAL,
        message="Emergency withdraw executed under shutdown",
        strategy=strategy,
        market=market,
        details={"principal_sold": principal_sold, "asset_received": asset_received},
    )


def create_system_error_alert(
    error_message: str,
    component: str = "FixedYieldStrategy",
    strategy: Optional[str] = None,
) -> Alert:
    """Create a system error alert."""
    return Alert(
        alert_type=AlertType.SYSTEM_ERROR,
        severity=AlertSeverity.CRITICAL,
        message=f"System error in {component}: {error_message}",
        strategy=strategy,
        details={
            "component": component,
        },
    )
