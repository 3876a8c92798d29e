"""
Fixed Yield Strategy - Access & Limit Gate.

============================================================
PURPOSE
============================================================
Caller roles and the deposit/withdraw limits reported to the
accounting layer.

DEPOSIT LIMIT:
    UNLIMITED iff not expired AND (open_deposits OR allow-listed)

WITHDRAW LIMIT:
    UNLIMITED iff expired OR open_withdrawals

ALLOW-LIST:
    Append-only. There is no revocation.

============================================================
"""

import logging
from decimal import Decimal
from typing import Dict, FrozenSet, Iterator, Set, Tuple

from .types import UNLIMITED, ZERO, Role, AuthorizationError


logger = logging.getLogger(__name__)


# ============================================================
# ALLOW LIST
# ============================================================

class AllowList:
    """Append-only set of depositors admitted while deposits are closed."""

    def __init__(self):
        self._members: Set[str] = set()

    def add(self, address: str) -> bool:
        """Admit address. Returns False if it was already admitted."""
        if address in self._members:
            return False
        self._members.add(address)
        logger.info(f"Allow-listed depositor {address}")
        return True

    def __contains__(self, address: object) -> bool:
        return address in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._members))

    def __len__(self) -> int:
        return len(self._members)

    def snapshot(self) -> FrozenSet[str]:
        return frozenset(self._members)

    def restore(self, snapshot: FrozenSet[str]) -> None:
        self._members = set(snapshot)


# ============================================================
# ROLES
# ============================================================

_ROLE_ERROR_CODES: Dict[Role, str] = {
    Role.MANAGEMENT: "AUT_NOT_MANAGEMENT",
    Role.KEEPER: "AUT_NOT_KEEPER",
    Role.EMERGENCY_ADMIN: "AUT_NOT_EMERGENCY_AUTHORIZED",
    Role.GOVERNANCE: "AUT_NOT_GOVERNANCE",
}

_MANAGEMENT_SATISFIES = frozenset({Role.KEEPER, Role.EMERGENCY_ADMIN})


class RoleRegistry:
    """
    Role membership.

    Management also passes keeper and emergency checks.
    Governance is separate.
    """

    def __init__(self):
        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}

    def grant(self, role: Role, address: str) -> None:
        self._members[role].add(address)
        logger.debug(f"Granted {role.value} to {address}")

    def has_role(self, role: Role, caller: str) -> bool:
        if caller in self._members[role]:
            return True
        return role in _MANAGEMENT_SATISFIES and caller in self._members[Role.MANAGEMENT]

    def require(self, role: Role, caller: str) -> None:
        """
        Raises:
            AuthorizationError: caller does not hold role
        """
        if not self.has_role(role, caller):
            logger.warning(f"Rejected {caller}: requires {role.value}")
            raise AuthorizationError(
                f"{caller} does not hold {role.value}",
                code=_ROLE_ERROR_CODES[role],
                details={"caller": caller, "role": role.value},
            )

    def members(self, role: Role) -> FrozenSet[str]:
        return frozenset(self._members[role])


# ============================================================
# LIMIT GATE
# ============================================================

class AccessGate:
    """Deposit and withdraw limits."""

    def __init__(
        self,
        allow_list: AllowList,
        open_deposits: bool = False,
        open_withdrawals: bool = False,
    ):
        self.allow_list = allow_list
        self.open_deposits = open_deposits
        self.open_withdrawals = open_withdrawals

    def deposit_limit(self, caller: str, expired: bool) -> Decimal:
        if expired:
            return ZERO
        if self.open_deposits or caller in self.allow_list:
            return UNLIMITED
        return ZERO

    def withdraw_limit(self, caller: str, expired: bool) -> Decimal:
        if expired or self.open_withdrawals:
            return UNLIMITED
        return ZERO

    def snapshot(self) -> Tuple[bool, bool, FrozenSet[str]]:
        return self.open_deposits, self.open_withdrawals, self.allow_list.snapshot()

    def restore(self, snapshot: Tuple[bool, bool, FrozenSet[str]]) -> None:
        self.open_deposits, self.open_withdrawals, members = snapshot
        self.allow_list.restore(members)
