"""Saving plan models: the catalogue entries deposits are created against.

Rates are integer basis points (1 bps = 0.01%). Amounts are integers in the
asset's smallest unit. A plan is mutable in place by an admin; deposits
snapshot what they need at creation, so plan edits never touch existing
positions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

BASIS_POINTS = 10_000


@dataclass(frozen=True)
class SavingPlanInput:
    """Admin-supplied parameters for creating or updating a plan."""
    name: str
    min_deposit: int
    max_deposit: int
    min_term_days: int
    max_term_days: int
    annual_rate_bps: int
    penalty_rate_bps: int


@dataclass
class SavingPlan:
    """A savings product.

    max_deposit == 0 means no upper bound.
    penalty_receiver None means early-withdrawal penalties stay in the vault.
    """
    plan_id: int
    name: str
    min_deposit: int
    max_deposit: int
    min_term_days: int
    max_term_days: int
    annual_rate_bps: int
    penalty_rate_bps: int
    is_active: bool = True
    penalty_receiver: Optional[str] = None

    def accepts_term(self, term_days: int) -> bool:
        return self.min_term_days <= term_days <= self.max_term_days

    def apply(self, plan_input: SavingPlanInput) -> None:
        """Overwrite the editable fields from an update input."""
        self.name = plan_input.name
        self.min_deposit = plan_input.min_deposit
        self.max_deposit = plan_input.max_deposit
        self.min_term_days = plan_input.min_term_days
        self.max_term_days = plan_input.max_term_days
        self.annual_rate_bps = plan_input.annual_rate_bps
        self.penalty_rate_bps = plan_input.penalty_rate_bps

    def to_dict(self) -> dict:
        return {
            "plan_id": self.plan_id,
            "name": self.name,
            "min_deposit": self.min_deposit,
            "max_deposit": self.max_deposit,
            "min_term_days": self.min_term_days,
            "max_term_days": self.max_term_days,
            "annual_rate_bps": self.annual_rate_bps,
            "penalty_rate_bps": self.penalty_rate_bps,
            "is_active": self.is_active,
            "penalty_receiver": self.penalty_receiver,
        }
