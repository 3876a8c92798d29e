"""
Fixed Yield Strategy - Repository.

============================================================
PURPOSE
============================================================
Database operations for strategy persistence.

RESPONSIBILITIES:
- Save/load committed events
- Save/load market bindings
- Record events as they are published

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import StrategyEventModel, MarketBindingModel
from .types import StrategyEvent, StrategyEventType


logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    """Decimals become strings, containers are converted recursively."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


# ============================================================
# STRATEGY REPOSITORY
# ============================================================

class StrategyRepository:
    """
    Repository for strategy data persistence.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self._session = session

    # --------------------------------------------------------
    # EVENT OPERATIONS
    # --------------------------------------------------------

    async def save_event(self, event: StrategyEvent) -> StrategyEventModel:
        """Save a committed event."""
        model = StrategyEventModel(
            event_id=event.event_id,
            event_type=event.event_type.value,
            strategy_address=event.strategy_address,
            market_address=event.market_address,
            details=_jsonable(event.details),
            timestamp=event.timestamp,
            recorded_at=event.recorded_at,
        )
        self._session.add(model)
        await self._session.commit()
        return model

    async def get_events(
        self,
        strategy_address: str,
        event_type: Optional[StrategyEventType] = None,
        limit: int = 100,
    ) -> List[StrategyEventModel]:
        """Get events for a strategy, oldest first."""
        query = select(StrategyEventModel).where(
            StrategyEventModel.strategy_address == strategy_address
        )
        if event_type is not None:
            query = query.where(StrategyEventModel.event_type == event_type.value)
        query = query.order_by(StrategyEventModel.timestamp, StrategyEventModel.id).limit(limit)

        result = await self._session.execute(query)
        return list(result.scalars())

    # --------------------------------------------------------
    # BINDING OPERATIONS
    # --------------------------------------------------------

    async def save_binding(
        self,
        strategy_address: str,
        binding: Dict[str, Any],
        previous_market: Optional[str] = None,
    ) -> MarketBindingModel:
        """Save a binding given in MarketBinding.to_dict() form."""
        model = MarketBindingModel(
            strategy_address=strategy_address,
            market_address=binding["market_address"],
            principal=binding["principal"],
            wrapper=binding["wrapper"],
            yield_token=binding["yield_token"],
            expiry=binding["expiry"],
            bound_at=binding["bound_at"],
            previous_market=previous_market,
        )
        self._session.add(model)
        await self._session.commit()
        return model

    async def get_binding_history(self, strategy_address: str) -> List[MarketBindingModel]:
        """Get all bindings of a strategy, oldest first."""
        result = await self._session.execute(
            select(MarketBindingModel)
            .where(MarketBindingModel.strategy_address == strategy_address)
            .order_by(MarketBindingModel.bound_at, MarketBindingModel.id)
        )
        return list(result.scalars())

    async def get_latest_binding(self, strategy_address: str) -> Optional[MarketBindingModel]:
        result = await self._session.execute(
            select(MarketBindingModel)
            .where(MarketBindingModel.strategy_address == strategy_address)
            .order_by(desc(MarketBindingModel.bound_at), desc(MarketBindingModel.id))
            .limit(1)
        )
        return result.scalar_one_or_none()


# ============================================================
# EVENT RECORDER
# ============================================================

class StrategyEventRecorder:
    """
    Event listener that persists every committed event.

    Events carrying a "binding" detail also record the binding.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def __call__(self, event: StrategyEvent) -> None:
        async with self._session_factory() as session:
            repository = StrategyRepository(session)
            await repository.save_event(event)

            binding = event.details.get("binding")
            if binding is not None:
                await repository.save_binding(
                    event.strategy_address,
                    binding,
                    previous_market=event.details.get("old_market"),
                )

        logger.debug(f"Recorded {event.event_type.value} event {event.event_id}")
