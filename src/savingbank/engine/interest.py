"""Interest, penalty and maturity formulas.

Pure integer arithmetic with truncating division. These functions are the
single source for both the read-only projections and the values applied
during withdrawal and renewal, so previews always match settlement.

    expected_interest = amount * rate_bps * term_days // (10000 * 365)
    early_penalty     = principal * penalty_bps // 10000   (flat, not prorated)
    maturity_date     = deposit_date + term_days * 86400
"""

from __future__ import annotations

from dataclasses import dataclass

from savingbank.clock import SECONDS_PER_DAY
from savingbank.models.deposit import Deposit
from savingbank.models.plan import BASIS_POINTS

DAYS_PER_YEAR = 365


@dataclass(frozen=True)
class Settlement:
    """Amounts due when a deposit is closed."""
    payout: int
    interest: int
    penalty: int
    is_early: bool


def expected_interest(amount: int, annual_rate_bps: int, term_days: int) -> int:
    """Simple interest over the full term, no compounding within the term."""
    return (amount * annual_rate_bps * term_days) // (BASIS_POINTS * DAYS_PER_YEAR)


def early_withdrawal_penalty(principal: int, penalty_rate_bps: int) -> int:
    return (principal * penalty_rate_bps) // BASIS_POINTS


def maturity_date(deposit_date: int, term_days: int) -> int:
    return deposit_date + term_days * SECONDS_PER_DAY


def settle(deposit: Deposit, penalty_rate_bps: int, now: int) -> Settlement:
    """Compute the payout for closing a deposit at ``now``.

    Matured deposits pay principal plus the interest fixed at creation.
    Early withdrawals forfeit all interest and pay a flat penalty on
    principal regardless of how much of the term remains.
    """
    if deposit.is_mature(now):
        return Settlement(
            payout=deposit.principal + deposit.expected_interest,
            interest=deposit.expected_interest,
            penalty=0,
            is_early=False,
        )
    penalty = early_withdrawal_penalty(deposit.principal, penalty_rate_bps)
    return Settlement(
        payout=deposit.principal - penalty,
        interest=0,
        penalty=penalty,
        is_early=True,
    )


def renewal_principal(deposit: Deposit) -> int:
    """Principal of the deposit a matured one rolls into."""
    return deposit.principal + deposit.expected_interest
