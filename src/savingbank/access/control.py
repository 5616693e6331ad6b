"""Role-based access control: a role → principals mapping.

Each component (bank, vault, certificate registry) owns one AccessControl
scope. Holders of DEFAULT_ADMIN_ROLE may grant and revoke every role in
their scope; everyone else is checked with has_role() at the top of each
mutating operation. There is no role inheritance.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Set

from savingbank.clock import Clock, to_datetime
from savingbank.errors import UnauthorizedError, ZeroAddressError
from savingbank.persistence.event_log import EventKind, EventLog

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_ROLE = "DEFAULT_ADMIN_ROLE"
ADMIN_ROLE = "ADMIN_ROLE"
PAUSER_ROLE = "PAUSER_ROLE"
LIQUIDITY_MANAGER_ROLE = "LIQUIDITY_MANAGER_ROLE"
WITHDRAW_ROLE = "WITHDRAW_ROLE"
MINTER_ROLE = "MINTER_ROLE"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_zero_address(address: Optional[str]) -> bool:
    return not address or address == ZERO_ADDRESS


class AccessControl:
    """Capability roles for one component.

    Usage:
        access = AccessControl("vault", admin="alice")
        access.grant_role("alice", WITHDRAW_ROLE, "bank")
        access.check_role(WITHDRAW_ROLE, "bank")
    """

    def __init__(
        self,
        scope: str,
        admin: str,
        event_log: Optional[EventLog] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if is_zero_address(admin):
            raise ZeroAddressError()
        self._scope = scope
        self._roles: Dict[str, Set[str]] = {DEFAULT_ADMIN_ROLE: {admin}}
        self._event_log = event_log
        self._clock = clock

    @property
    def scope(self) -> str:
        return self._scope

    def has_role(self, role: str, account: str) -> bool:
        return account in self._roles.get(role, set())

    def check_role(self, role: str, account: str) -> None:
        """Raise UnauthorizedError unless account holds role."""
        if not self.has_role(role, account):
            logger.warning("%s: %s denied (missing %s)", self._scope, account, role)
            raise UnauthorizedError()

    def members(self, role: str) -> Set[str]:
        return set(self._roles.get(role, set()))

    def grant_role(self, caller: str, role: str, account: str) -> bool:
        """Grant role to account. Returns False if already held."""
        self.check_role(DEFAULT_ADMIN_ROLE, caller)
        if is_zero_address(account):
            raise ZeroAddressError()
        holders = self._roles.setdefault(role, set())
        if account in holders:
            return False
        holders.add(account)
        logger.info("%s: granted %s to %s", self._scope, role, account)
        self._emit(EventKind.ROLE_GRANTED, caller, role, account)
        return True

    def revoke_role(self, caller: str, role: str, account: str) -> bool:
        """Revoke role from account. Returns False if not held."""
        self.check_role(DEFAULT_ADMIN_ROLE, caller)
        return self._remove(caller, role, account)

    def renounce_role(self, caller: str, role: str) -> bool:
        """Drop one of the caller's own roles."""
        return self._remove(caller, role, caller)

    def snapshot(self) -> Dict[str, Set[str]]:
        return {role: set(holders) for role, holders in self._roles.items()}

    def restore(self, snapshot: Dict[str, Set[str]]) -> None:
        self._roles = {role: set(holders) for role, holders in snapshot.items()}

    def _remove(self, caller: str, role: str, account: str) -> bool:
        holders = self._roles.get(role, set())
        if account not in holders:
            return False
        holders.discard(account)
        logger.info("%s: revoked %s from %s", self._scope, role, account)
        self._emit(EventKind.ROLE_REVOKED, caller, role, account)
        return True

    def _emit(self, kind: EventKind, caller: str, role: str, account: str) -> None:
        if self._event_log is None:
            return
        self._event_log.emit(
            kind,
            caller,
            {"scope": self._scope, "role": role, "account": account},
            timestamp_utc=to_datetime(self._clock.now()) if self._clock else None,
        )
