"""
Fixed Yield Strategy - ORM Models.

============================================================
PURPOSE
============================================================
SQLAlchemy ORM models for strategy persistence.

TABLES:
- strategy_events: Committed strategy events
- strategy_market_bindings: Every market the strategy bound

AUDIT REQUIREMENTS:
- Every committed event is persisted
- Every binding is recorded, including rollovers

Amounts inside event details are stored as strings to keep
full token precision.

============================================================
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ============================================================
# BASE
# ============================================================

class Base(DeclarativeBase):
    """Base class for strategy ORM models."""
    pass


# ============================================================
# STRATEGY EVENT MODEL
# ============================================================

class StrategyEventModel(Base):
    """
    Persisted strategy event.
    """

    __tablename__ = "strategy_events"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identifiers
    event_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    strategy_address: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    market_address: Mapped[str] = mapped_column(String(128), nullable=False)

    # Payload
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    # Timestamps
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_strategy_events_strategy_timestamp", "strategy_address", "timestamp"),
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "event_id": self.event_id,
            "event_type": self.event_type,
            "strategy_address": self.strategy_address,
            "market_address": self.market_address,
            "details": self.details,
            "timestamp": self.timestamp,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }


# ============================================================
# MARKET BINDING MODEL
# ============================================================

class MarketBindingModel(Base):
    """
    One market binding of a strategy.
    """

    __tablename__ = "strategy_market_bindings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    strategy_address: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    market_address: Mapped[str] = mapped_column(String(128), nullable=False)
    principal: Mapped[str] = mapped_column(String(128), nullable=False)
    wrapper: Mapped[str] = mapped_column(String(128), nullable=False)
    yield_token: Mapped[str] = mapped_column(String(128), nullable=False)

    expiry: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bound_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    previous_market: Mapped[Optional[str]] = mapped_column(String(128))

    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_strategy_market_bindings_strategy_bound", "strategy_address", "bound_at"),
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "strategy_address": self.strategy_address,
            "market_address": self.market_address,
            "principal": self.principal,
            "wrapper": self.wrapper,
            "yield_token": self.yield_token,
            "expiry": self.expiry,
            "bound_at": self.bound_at,
            "previous_market": self.previous_market,
        }
