"""Deposit state machine: enforces valid lifecycle transitions.

Deposit lifecycle:
    ACTIVE → WITHDRAWN
    ACTIVE → RENEWED

State semantics:
- ACTIVE: funds locked, certificate holder may withdraw (early, with
  penalty, or at maturity) or renew (at maturity only).
- WITHDRAWN: terminal, payout sent to the certificate holder.
- RENEWED: terminal, principal and interest rolled into a new deposit.

Pure computation: validates transitions only. Side effects (vault
movements, certificate checks, event logging) are handled by the bank.
"""

from __future__ import annotations

from savingbank.errors import (
    DepositNotActiveError,
    DepositNotMaturedError,
)
from savingbank.models.deposit import DEPOSIT_TRANSITIONS, Deposit, DepositStatus


class DepositStateMachine:
    """Validates and applies deposit status transitions."""

    @staticmethod
    def require_active(deposit: Deposit) -> None:
        if deposit.status != DepositStatus.ACTIVE:
            raise DepositNotActiveError(
                f"Deposit {deposit.deposit_id} is {deposit.status.value}, not active"
            )

    @staticmethod
    def require_matured(deposit: Deposit, now: int) -> None:
        if not deposit.is_mature(now):
            raise DepositNotMaturedError(
                f"Deposit {deposit.deposit_id} matures at {deposit.maturity_date}"
            )

    @staticmethod
    def close(deposit: Deposit, target: DepositStatus, now: int) -> None:
        """Move an active deposit to a terminal status."""
        DepositStateMachine.require_active(deposit)
        deposit.transition_to(target)
        deposit.closed_at = now

    @staticmethod
    def is_terminal(status: DepositStatus) -> bool:
        return not DEPOSIT_TRANSITIONS.get(status)

    @staticmethod
    def valid_transitions(status: DepositStatus) -> set[DepositStatus]:
        return set(DEPOSIT_TRANSITIONS.get(status, frozenset()))
