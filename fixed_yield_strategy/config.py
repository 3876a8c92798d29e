"""
Fixed Yield Strategy - Configuration.

============================================================
PURPOSE
============================================================
Construction-time configuration of the strategy.

Configuration can be loaded from:
- Default values
- Environment variables (FYS_*, after load_dotenv)
- YAML config file

Runtime changes go through the management setters, not here.

============================================================
"""

import os
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, List, Union

import yaml
from dotenv import load_dotenv

from .types import (
    MAX_BPS,
    UNLIMITED,
    ZERO,
    DEFAULT_TWAP_DURATION_SECONDS,
    SwapParameters,
    ValidationError,
)


logger = logging.getLogger(__name__)


# ============================================================
# SWAP CONFIGURATION
# ============================================================

@dataclass
class SwapConfig:
    """Initial swap parameters."""

    max_intermediary_per_tend: Decimal = UNLIMITED
    """Cap per tend. 0 disables swapping."""

    min_swap_interval: int = 0
    """Cooldown between tends in seconds."""

    min_amount_to_sell: Decimal = ZERO
    """Dust floor for a swap."""

    min_amount_to_trigger: Decimal = ZERO
    """Balance needed before the tend trigger fires."""

    swap_slippage_bps: int = 50
    """Price-impact tolerance in basis points."""

    def to_parameters(self) -> SwapParameters:
        return SwapParameters(
            max_intermediary_per_tend=self.max_intermediary_per_tend,
            min_swap_interval=self.min_swap_interval,
            min_amount_to_sell=self.min_amount_to_sell,
            min_amount_to_trigger=self.min_amount_to_trigger,
            swap_slippage_bps=self.swap_slippage_bps,
        )


# ============================================================
# ORACLE CONFIGURATION
# ============================================================

@dataclass
class OracleConfig:
    """Oracle valuation configuration."""

    enabled: bool = True
    """Use the TWAP oracle. Disabled means par valuation."""

    twap_duration_seconds: int = DEFAULT_TWAP_DURATION_SECONDS
    """TWAP window."""


# ============================================================
# ACCESS CONFIGURATION
# ============================================================

@dataclass
class AccessConfig:
    """Initial deposit and withdraw gating."""

    open_deposits: bool = False
    """Anyone may deposit while unexpired."""

    open_withdrawals: bool = False
    """Anyone may withdraw before expiry."""

    allow_list: List[str] = field(default_factory=list)
    """Depositors admitted at construction."""


# ============================================================
# REPORT CONFIGURATION
# ============================================================

@dataclass
class ReportConfig:
    """Report behaviour."""

    claim_rewards_on_report: bool = False
    """Claim market rewards before valuing."""


# ============================================================
# ALERTING CONFIGURATION
# ============================================================

@dataclass
class StrategyAlertingConfig:
    """
    Alerting configuration for strategy events.
    """

    enabled: bool = True
    """Whether alerting is enabled."""

    telegram_bot_token_env: str = "TELEGRAM_BOT_TOKEN"
    """Environment variable for Telegram bot token."""

    telegram_chat_id_env: str = "TELEGRAM_CHAT_ID"
    """Environment variable for Telegram chat ID."""

    min_interval_seconds: float = 5.0
    """Minimum interval between alerts."""

    max_alerts_per_minute: int = 10
    """Maximum alerts per minute."""

    min_severity: str = "WARNING"
    """Minimum severity to alert (INFO, WARNING, ERROR, CRITICAL)."""

    alert_on_failure: bool = True
    """Alert when an entry point fails."""


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class StrategyConfig:
    """
    Master configuration for the Fixed Yield Strategy.
    """

    # Sub-configs
    swap: SwapConfig = field(default_factory=SwapConfig)
    """Swap configuration."""

    oracle: OracleConfig = field(default_factory=OracleConfig)
    """Oracle configuration."""

    access: AccessConfig = field(default_factory=AccessConfig)
    """Access configuration."""

    report: ReportConfig = field(default_factory=ReportConfig)
    """Report configuration."""

    alerting: StrategyAlertingConfig = field(default_factory=StrategyAlertingConfig)
    """Alerting configuration."""

    # Global settings
    persist_events: bool = True
    """Whether to persist committed events."""

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not 0 <= self.swap.swap_slippage_bps <= MAX_BPS:
            errors.append(f"swap_slippage_bps must be within 0..{MAX_BPS}")
        for name in ("max_intermediary_per_tend", "min_amount_to_sell", "min_amount_to_trigger"):
            value = getattr(self.swap, name)
            if value.is_nan() or value < 0:
                errors.append(f"{name} must be non-negative")
        if self.swap.min_swap_interval < 0:
            errors.append("min_swap_interval must be non-negative")
        if self.oracle.twap_duration_seconds <= 0:
            errors.append("twap_duration_seconds must be positive")
        if self.alerting.min_severity not in ("INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"unknown alert severity {self.alerting.min_severity}")

        return errors

    def ensure_valid(self) -> None:
        """
        Raises:
            ValidationError: if validate() reports any error
        """
        errors = self.validate()
        if errors:
            raise ValidationError(
                f"Invalid strategy configuration: {'; '.join(errors)}",
                code="VAL_INVALID_CONFIG",
                details={"errors": errors},
            )

    @classmethod
    def for_testing(cls) -> "StrategyConfig":
        """Get configuration for testing."""
        return cls(
            swap=SwapConfig(swap_slippage_bps=100),
            access=AccessConfig(open_deposits=True, open_withdrawals=True),
            alerting=StrategyAlertingConfig(enabled=False),
            persist_events=False,
        )

    @classmethod
    def for_production(cls) -> "StrategyConfig":
        """Get configuration for production."""
        return cls(
            swap=SwapConfig(
                min_swap_interval=3600,
                swap_slippage_bps=50,
            ),
            oracle=OracleConfig(enabled=True, twap_duration_seconds=DEFAULT_TWAP_DURATION_SECONDS),
            access=AccessConfig(open_deposits=False, open_withdrawals=False),
            report=ReportConfig(claim_rewards_on_report=True),
        )

    @classmethod
    def from_env(cls) -> "StrategyConfig":
        """Load configuration from environment variables."""
        load_dotenv()
        allow_list = os.getenv("FYS_ALLOW_LIST", "")
        return cls(
            swap=SwapConfig(
                max_intermediary_per_tend=_decimal(os.getenv("FYS_MAX_INTERMEDIARY_PER_TEND", "Infinity")),
                min_swap_interval=int(os.getenv("FYS_MIN_SWAP_INTERVAL", "0")),
                min_amount_to_sell=_decimal(os.getenv("FYS_MIN_AMOUNT_TO_SELL", "0")),
                min_amount_to_trigger=_decimal(os.getenv("FYS_MIN_AMOUNT_TO_TRIGGER", "0")),
                swap_slippage_bps=int(os.getenv("FYS_SWAP_SLIPPAGE_BPS", "50")),
            ),
            oracle=OracleConfig(
                enabled=os.getenv("FYS_ORACLE_ENABLED", "true").lower() == "true",
                twap_duration_seconds=int(
                    os.getenv("FYS_TWAP_DURATION_SECONDS", str(DEFAULT_TWAP_DURATION_SECONDS))
                ),
            ),
            access=AccessConfig(
                open_deposits=os.getenv("FYS_OPEN_DEPOSITS", "false").lower() == "true",
                open_withdrawals=os.getenv("FYS_OPEN_WITHDRAWALS", "false").lower() == "true",
                allow_list=[a.strip() for a in allow_list.split(",") if a.strip()],
            ),
            report=ReportConfig(
                claim_rewards_on_report=os.getenv("FYS_CLAIM_REWARDS_ON_REPORT", "false").lower() == "true",
            ),
            alerting=StrategyAlertingConfig(
                enabled=os.getenv("FYS_ALERTING_ENABLED", "true").lower() == "true",
                min_severity=os.getenv("FYS_ALERT_MIN_SEVERITY", "WARNING").upper(),
            ),
            persist_events=os.getenv("FYS_PERSIST_EVENTS", "true").lower() == "true",
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "StrategyConfig":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        config = cls()

        if "swap" in data:
            sw = data["swap"]
            config.swap = SwapConfig(
                max_intermediary_per_tend=_decimal(sw.get("max_intermediary_per_tend", "Infinity")),
                min_swap_interval=int(sw.get("min_swap_interval", 0)),
                min_amount_to_sell=_decimal(sw.get("min_amount_to_sell", 0)),
                min_amount_to_trigger=_decimal(sw.get("min_amount_to_trigger", 0)),
                swap_slippage_bps=int(sw.get("swap_slippage_bps", 50)),
            )

        if "oracle" in data:
            oc = data["oracle"]
            config.oracle = OracleConfig(
                enabled=oc.get("enabled", True),
                twap_duration_seconds=int(oc.get("twap_duration_seconds", DEFAULT_TWAP_DURATION_SECONDS)),
            )

        if "access" in data:
            ac = data["access"]
            config.access = AccessConfig(
                open_deposits=ac.get("open_deposits", False),
                open_withdrawals=ac.get("open_withdrawals", False),
                allow_list=list(ac.get("allow_list", [])),
            )

        if "report" in data:
            config.report = ReportConfig(
                claim_rewards_on_report=data["report"].get("claim_rewards_on_report", False),
            )

        if "alerting" in data:
            al = data["alerting"]
            config.alerting = StrategyAlertingConfig(
                enabled=al.get("enabled", True),
                min_interval_seconds=float(al.get("min_interval_seconds", 5.0)),
                max_alerts_per_minute=int(al.get("max_alerts_per_minute", 10)),
                min_severity=str(al.get("min_severity", "WARNING")).upper(),
                alert_on_failure=al.get("alert_on_failure", True),
            )

        config.persist_events = data.get("persist_events", True)

        logger.info(f"Loaded strategy configuration from {path}")
        return config


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Not a decimal amount: {value!r}", code="VAL_INVALID_CONFIG")
