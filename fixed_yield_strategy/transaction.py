"""
Fixed Yield Strategy - Transactions.

============================================================
PURPOSE
============================================================
All-or-nothing execution of strategy entry points.

GUARANTEES:
- One entry point runs at a time (single asyncio.Lock)
- Ledger and strategy state are snapshotted on entry
- Any exception restores both snapshots and re-raises
- Events and alerts are published only after commit
- Readers outside the running block see committed balances

Listener failures are logged and never undo a commit.

============================================================
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Protocol, Sequence

from .ledger import LedgerSnapshot, TokenLedger
from .types import ZERO, StrategyEvent


logger = logging.getLogger(__name__)


EventListener = Callable[[StrategyEvent], Awaitable[None]]


class Snapshotable(Protocol):
    """State that can be captured and put back."""

    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...


@dataclass
class TransactionScope:
    """Per-call scratch space for side effects held until commit."""

    operation: str
    events: List[StrategyEvent] = field(default_factory=list)
    alerts: List[Any] = field(default_factory=list)

    def emit(self, event: StrategyEvent) -> None:
        self.events.append(event)

    def alert(self, alert: Any) -> None:
        self.alerts.append(alert)


class StrategyTransaction:
    """Serialises entry points and rolls back failed ones."""

    def __init__(
        self,
        ledger: TokenLedger,
        participants: Sequence[Snapshotable],
        on_alert: Optional[Callable[[Any], Awaitable[None]]] = None,
    ):
        self._ledger = ledger
        self._participants = list(participants)
        self._on_alert = on_alert
        self._listeners: List[EventListener] = []
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None
        self._committed: Optional[LedgerSnapshot] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def committed_balance(self, token: str, holder: str) -> Decimal:
        """
        Balance as of the last commit.

        The task running the current block sees its own writes.
        """
        if self._committed is not None and asyncio.current_task() is not self._owner:
            return self._committed.balances.get((token, holder), ZERO)
        return self._ledger.balance_of(token, holder)

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Wait for any running block and hold off new ones while reading."""
        async with self._lock:
            yield

    @asynccontextmanager
    async def atomic(self, operation: str) -> AsyncIterator[TransactionScope]:
        """
        Run a block atomically.

        Usage:
            async with transaction.atomic("tend") as scope:
                ...
                scope.emit(event)
        """
        scope = TransactionScope(operation=operation)
        async with self._lock:
            ledger_snapshot = self._ledger.snapshot()
            state_snapshots = [p.snapshot() for p in self._participants]
            self._owner = asyncio.current_task()
            self._committed = ledger_snapshot
            try:
                yield scope
            except BaseException as e:
                self._ledger.restore(ledger_snapshot)
                for participant, snapshot in zip(self._participants, state_snapshots):
                    participant.restore(snapshot)
                logger.warning(f"{operation} rolled back: {e}")
                raise
            finally:
                self._owner = None
                self._committed = None

        await self._publish(scope)

    async def _publish(self, scope: TransactionScope) -> None:
        for event in scope.events:
            for listener in self._listeners:
                try:
                    await listener(event)
                except Exception as e:
                    logger.error(f"Event listener failed on {event.event_type.value}: {e}")

        if self._on_alert:
            for alert in scope.alerts:
                try:
                    await self._on_alert(alert)
                except Exception as e:
                    logger.error(f"Failed to send alert: {e}")
