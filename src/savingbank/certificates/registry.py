"""Certificate registry: who holds the right to act on each deposit.

One certificate per deposit, sharing the deposit's integer id. The
registry knows nothing about deposits; the bank links the two by id.

Transfer cooldown: any ownership transfer stamps last_transfer_time, and
for the next 24 hours the certificate cannot be used to withdraw or renew.
Minting does not stamp it, so the original depositor never waits.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from savingbank.access.control import MINTER_ROLE, AccessControl, is_zero_address
from savingbank.clock import Clock, to_datetime
from savingbank.engine.atomic import atomic
from savingbank.errors import (
    CertificateAlreadyExistsError,
    CertificateNotFoundError,
    UnauthorizedError,
    ZeroAddressError,
)
from savingbank.models.certificate import Certificate
from savingbank.persistence.event_log import EventKind, EventLog

logger = logging.getLogger(__name__)


class CertificateRegistry:
    """Non-fungible ownership ledger with a post-transfer cooldown.

    Usage:
        registry = CertificateRegistry(access, clock)
        registry.mint("bank", "alice", 1)
        registry.transfer("alice", 1, "bob")
        registry.is_in_cooldown(1)  # True for the next 24h
    """

    def __init__(
        self,
        access: AccessControl,
        clock: Clock,
        name: str = "SavingBank Deposit Certificate",
        symbol: str = "SBDC",
        event_log: Optional[EventLog] = None,
    ) -> None:
        self.name = name
        self.symbol = symbol
        self._access = access
        self._clock = clock
        self._event_log = event_log
        self._certificates: Dict[int, Certificate] = {}
        self._operators: Dict[str, Set[str]] = {}

    @property
    def access(self) -> AccessControl:
        return self._access

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------

    def mint(self, caller: str, to: str, certificate_id: int) -> Certificate:
        """Issue a certificate. Requires MINTER_ROLE."""
        self._access.check_role(MINTER_ROLE, caller)
        if is_zero_address(to):
            raise ZeroAddressError()
        if certificate_id in self._certificates:
            raise CertificateAlreadyExistsError(
                f"Certificate already exists: {certificate_id}"
            )
        certificate = Certificate(certificate_id=certificate_id, owner=to)
        self._certificates[certificate_id] = certificate
        self._emit(
            EventKind.CERTIFICATE_MINTED,
            caller,
            {"certificate_id": certificate_id, "owner": to},
        )
        return certificate

    # ------------------------------------------------------------------
    # Ownership queries
    # ------------------------------------------------------------------

    def exists(self, certificate_id: int) -> bool:
        return certificate_id in self._certificates

    def owner_of(self, certificate_id: int) -> str:
        return self._get(certificate_id).owner

    def balance_of(self, owner: str) -> int:
        return sum(1 for c in self._certificates.values() if c.owner == owner)

    def tokens_of(self, owner: str) -> List[int]:
        return sorted(
            c.certificate_id for c in self._certificates.values() if c.owner == owner
        )

    @property
    def total_supply(self) -> int:
        return len(self._certificates)

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    def approve(self, caller: str, approved: Optional[str], certificate_id: int) -> None:
        """Let ``approved`` transfer one certificate. None clears it."""
        certificate = self._get(certificate_id)
        if caller != certificate.owner and not self.is_approved_for_all(
            certificate.owner, caller
        ):
            raise UnauthorizedError()
        certificate.approved = None if is_zero_address(approved) else approved

    def get_approved(self, certificate_id: int) -> Optional[str]:
        return self._get(certificate_id).approved

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        if is_zero_address(operator):
            raise ZeroAddressError()
        operators = self._operators.setdefault(caller, set())
        if approved:
            operators.add(operator)
        else:
            operators.discard(operator)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return operator in self._operators.get(owner, set())

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer(self, caller: str, certificate_id: int, to: str) -> None:
        """Move the caller's certificate (or one they may manage) to ``to``."""
        self.transfer_from(caller, self.owner_of(certificate_id), to, certificate_id)

    def transfer_from(
        self,
        caller: str,
        from_: str,
        to: str,
        certificate_id: int,
    ) -> None:
        """Standard ownership transfer. Starts the 24h cooldown."""
        certificate = self._get(certificate_id)
        if certificate.owner != from_:
            raise UnauthorizedError()
        if not self._is_approved_or_owner(caller, certificate):
            raise UnauthorizedError()
        if is_zero_address(to):
            raise ZeroAddressError()

        with atomic([self], self._event_log):
            now = self._clock.now()
            certificate.owner = to
            certificate.approved = None
            certificate.last_transfer_time = now
            logger.info(
                "Certificate %d transferred %s → %s, cooldown until %d",
                certificate_id, from_, to, now + certificate.remaining_cooldown(now),
            )
            self._emit(
                EventKind.CERTIFICATE_TRANSFERRED,
                caller,
                {"certificate_id": certificate_id, "from": from_, "to": to},
            )

    # ------------------------------------------------------------------
    # Cooldown
    # ------------------------------------------------------------------

    def get_last_transfer_time(self, certificate_id: int) -> Optional[int]:
        return self._get(certificate_id).last_transfer_time

    def is_in_cooldown(self, certificate_id: int) -> bool:
        return self._get(certificate_id).in_cooldown(self._clock.now())

    def get_remaining_cooldown(self, certificate_id: int) -> int:
        return self._get(certificate_id).remaining_cooldown(self._clock.now())

    # ------------------------------------------------------------------
    # Atomic unit participation
    # ------------------------------------------------------------------

    def snapshot(self) -> Tuple[Dict[int, Certificate], Dict[str, Set[str]]]:
        return (
            {cid: replace(c) for cid, c in self._certificates.items()},
            {owner: set(ops) for owner, ops in self._operators.items()},
        )

    def restore(self, snapshot: Tuple[Dict[int, Certificate], Dict[str, Set[str]]]) -> None:
        certificates, operators = snapshot
        self._certificates = {cid: replace(c) for cid, c in certificates.items()}
        self._operators = {owner: set(ops) for owner, ops in operators.items()}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_approved_or_owner(self, caller: str, certificate: Certificate) -> bool:
        return (
            caller == certificate.owner
            or caller == certificate.approved
            or self.is_approved_for_all(certificate.owner, caller)
        )

    def _get(self, certificate_id: int) -> Certificate:
        certificate = self._certificates.get(certificate_id)
        if certificate is None:
            raise CertificateNotFoundError(f"Unknown certificate ID: {certificate_id}")
        return certificate

    def _emit(self, kind: EventKind, caller: str, payload: dict) -> None:
        if self._event_log is None:
            return
        self._event_log.emit(
            kind, caller, payload, timestamp_utc=to_datetime(self._clock.now())
        )
