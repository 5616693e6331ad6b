"""Deposit models: the financial record behind each certificate.

State machine:
    ACTIVE → WITHDRAWN   (principal paid out, with interest or penalty)
    ACTIVE → RENEWED     (principal + interest rolled into a new deposit)

Both outcomes are terminal. Nothing transitions back into ACTIVE.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional

from savingbank.errors import InvalidTransitionError


class DepositStatus(str, enum.Enum):
    """Lifecycle state of a deposit."""
    ACTIVE = "active"
    WITHDRAWN = "withdrawn"
    RENEWED = "renewed"


# Valid deposit state transitions
DEPOSIT_TRANSITIONS: Dict[DepositStatus, frozenset] = {
    DepositStatus.ACTIVE: frozenset({
        DepositStatus.WITHDRAWN,
        DepositStatus.RENEWED,
    }),
    DepositStatus.WITHDRAWN: frozenset(),
    DepositStatus.RENEWED: frozenset(),
}


@dataclass
class Deposit:
    """A fixed-term deposit.

    expected_interest is fixed at creation from the plan rate in force at
    that moment. certificate_id always equals deposit_id.
    """
    deposit_id: int
    depositor: str
    plan_id: int
    principal: int
    term_days: int
    deposit_date: int
    maturity_date: int
    expected_interest: int
    status: DepositStatus = DepositStatus.ACTIVE
    closed_at: Optional[int] = None
    renewed_from: Optional[int] = None
    renewed_into: Optional[int] = None

    @property
    def certificate_id(self) -> int:
        return self.deposit_id

    @property
    def is_active(self) -> bool:
        return self.status == DepositStatus.ACTIVE

    def is_mature(self, now: int) -> bool:
        return now >= self.maturity_date

    def transition_to(self, new_status: DepositStatus) -> None:
        """Transition to a new status, validating the transition is legal."""
        allowed = DEPOSIT_TRANSITIONS.get(self.status, frozenset())
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Invalid deposit transition: {self.status.value} → {new_status.value}"
            )
        self.status = new_status

    def to_dict(self) -> dict:
        return {
            "deposit_id": self.deposit_id,
            "depositor": self.depositor,
            "plan_id": self.plan_id,
            "principal": self.principal,
            "term_days": self.term_days,
            "deposit_date": self.deposit_date,
            "maturity_date": self.maturity_date,
            "expected_interest": self.expected_interest,
            "status": self.status.value,
            "certificate_id": self.certificate_id,
        }


@dataclass(frozen=True)
class WithdrawalResult:
    """Settlement figures of a completed withdrawal."""
    deposit_id: int
    recipient: str
    payout: int
    interest: int
    penalty: int
    is_early: bool
    penalty_receiver: Optional[str] = None
