"""
Fixed Yield Strategy - Token Ledger.

============================================================
PURPOSE
============================================================
In-process token balance and allowance storage shared by the
strategy and its in-memory collaborators.

It plays the role of host storage: every entry point snapshots
it on entry and restores it on failure, so a failed call never
leaves moved tokens behind.

============================================================
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Tuple

from .types import ZERO, UNLIMITED, ValidationError, ExecutionError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerSnapshot:
    """Frozen copy of ledger storage."""

    balances: Dict[Tuple[str, str], Decimal]
    allowances: Dict[Tuple[str, str, str], Decimal]


class TokenLedger:
    """
    Balances keyed by (token, holder), allowances keyed by
    (token, owner, spender).

    An UNLIMITED allowance is never decremented.
    """

    def __init__(self):
        self._balances: Dict[Tuple[str, str], Decimal] = {}
        self._allowances: Dict[Tuple[str, str, str], Decimal] = {}

    # --------------------------------------------------------
    # VIEWS
    # --------------------------------------------------------

    def balance_of(self, token: str, holder: str) -> Decimal:
        return self._balances.get((token, holder), ZERO)

    def allowance(self, token: str, owner: str, spender: str) -> Decimal:
        return self._allowances.get((token, owner, spender), ZERO)

    # --------------------------------------------------------
    # MUTATIONS
    # --------------------------------------------------------

    def mint(self, token: str, to: str, amount: Decimal) -> None:
        self._check_amount(amount)
        self._balances[(token, to)] = self.balance_of(token, to) + amount

    def burn(self, token: str, holder: str, amount: Decimal) -> None:
        self._check_amount(amount)
        self._debit(token, holder, amount)

    def transfer(self, token: str, sender: str, recipient: str, amount: Decimal) -> None:
        self._check_amount(amount)
        if amount == 0:
            return
        self._debit(token, sender, amount)
        self._balances[(token, recipient)] = self.balance_of(token, recipient) + amount

    def approve(self, token: str, owner: str, spender: str, amount: Decimal) -> None:
        if amount.is_nan() or amount < 0:
            raise ValidationError(f"Invalid allowance: {amount}", code="VAL_INVALID_AMOUNT")
        self._allowances[(token, owner, spender)] = amount
        logger.debug(f"Approved {spender} for {amount} {token} of {owner}")

    def transfer_from(
        self,
        token: str,
        spender: str,
        owner: str,
        recipient: str,
        amount: Decimal,
    ) -> None:
        """Move tokens on behalf of owner, consuming allowance."""
        self._check_amount(amount)
        if amount == 0:
            return
        allowed = self.allowance(token, owner, spender)
        if allowed < amount:
            raise ExecutionError(
                f"Allowance {allowed} of {spender} below {amount} {token}",
                code="EXE_INSUFFICIENT_ALLOWANCE",
                details={"token": token, "owner": owner, "spender": spender},
            )
        self.transfer(token, owner, recipient, amount)
        if allowed != UNLIMITED:
            self._allowances[(token, owner, spender)] = allowed - amount

    # --------------------------------------------------------
    # SNAPSHOT
    # --------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            balances=dict(self._balances),
            allowances=dict(self._allowances),
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self._balances = dict(snapshot.balances)
        self._allowances = dict(snapshot.allowances)

    # --------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------

    def _debit(self, token: str, holder: str, amount: Decimal) -> None:
        balance = self.balance_of(token, holder)
        if balance < amount:
            raise ExecutionError(
                f"Balance {balance} of {holder} below {amount} {token}",
                code="EXE_INSUFFICIENT_BALANCE",
                details={"token": token, "holder": holder},
            )
        self._balances[(token, holder)] = balance - amount

    @staticmethod
    def _check_amount(amount: Decimal) -> None:
        if not amount.is_finite() or amount < 0:
            raise ValidationError(f"Invalid token amount: {amount}", code="VAL_INVALID_AMOUNT")
