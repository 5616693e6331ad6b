"""Plan registry: the admin-managed catalogue of savings products.

The registry is pure bookkeeping: validation and storage. Role checks and
event logging are handled by the bank, which is the only writer.

Plan ids start at 1 and are never reused. Plans are never deleted; a
deactivated plan stays readable and keeps serving its existing deposits,
it only stops accepting new ones.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from savingbank.access.control import is_zero_address
from savingbank.errors import (
    InvalidDepositBoundsError,
    InvalidInterestRateError,
    InvalidPenaltyRateError,
    InvalidTermDaysError,
    PlanStateError,
    SavingPlanNotFoundError,
)
from savingbank.models.plan import BASIS_POINTS, SavingPlan, SavingPlanInput


def validate_plan_input(plan_input: SavingPlanInput) -> None:
    """Reject malformed plan parameters, one error kind per rule."""
    if plan_input.min_term_days <= 0:
        raise InvalidTermDaysError("Minimum term must be at least one day")
    if plan_input.max_term_days <= plan_input.min_term_days:
        raise InvalidTermDaysError(
            f"Maximum term ({plan_input.max_term_days}) must exceed "
            f"minimum term ({plan_input.min_term_days})"
        )
    if plan_input.annual_rate_bps <= 0:
        raise InvalidInterestRateError("Annual interest rate must be positive")
    if not 0 <= plan_input.penalty_rate_bps <= BASIS_POINTS:
        raise InvalidPenaltyRateError(
            f"Penalty rate must be between 0 and {BASIS_POINTS} bps, "
            f"got {plan_input.penalty_rate_bps}"
        )
    if plan_input.min_deposit < 0:
        raise InvalidDepositBoundsError("Minimum deposit cannot be negative")
    if plan_input.max_deposit < 0 or (
        plan_input.max_deposit != 0 and plan_input.max_deposit < plan_input.min_deposit
    ):
        raise InvalidDepositBoundsError(
            f"Maximum deposit ({plan_input.max_deposit}) must be 0 (unbounded) "
            f"or at least the minimum ({plan_input.min_deposit})"
        )


class PlanRegistry:
    """Stores saving plans by integer id.

    Usage:
        registry = PlanRegistry()
        plan_id = registry.create_plan(plan_input)
        registry.deactivate(plan_id)
    """

    def __init__(self) -> None:
        self._plans: Dict[int, SavingPlan] = {}
        self._next_id = 1

    def create_plan(self, plan_input: SavingPlanInput) -> int:
        validate_plan_input(plan_input)
        plan_id = self._next_id
        self._plans[plan_id] = SavingPlan(
            plan_id=plan_id,
            name=plan_input.name,
            min_deposit=plan_input.min_deposit,
            max_deposit=plan_input.max_deposit,
            min_term_days=plan_input.min_term_days,
            max_term_days=plan_input.max_term_days,
            annual_rate_bps=plan_input.annual_rate_bps,
            penalty_rate_bps=plan_input.penalty_rate_bps,
        )
        self._next_id += 1
        return plan_id

    def update_plan(self, plan_id: int, plan_input: SavingPlanInput) -> SavingPlan:
        plan = self.get(plan_id)
        validate_plan_input(plan_input)
        plan.apply(plan_input)
        return plan

    def activate(self, plan_id: int) -> SavingPlan:
        plan = self.get(plan_id)
        if plan.is_active:
            raise PlanStateError(f"Plan {plan_id} is already active")
        plan.is_active = True
        return plan

    def deactivate(self, plan_id: int) -> SavingPlan:
        plan = self.get(plan_id)
        if not plan.is_active:
            raise PlanStateError(f"Plan {plan_id} is already inactive")
        plan.is_active = False
        return plan

    def set_penalty_receiver(self, plan_id: int, receiver: Optional[str]) -> SavingPlan:
        """Route early-withdrawal penalties. Zero address clears the route."""
        plan = self.get(plan_id)
        plan.penalty_receiver = None if is_zero_address(receiver) else receiver
        return plan

    def get_penalty_receiver(self, plan_id: int) -> Optional[str]:
        return self.get(plan_id).penalty_receiver

    def get(self, plan_id: int) -> SavingPlan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise SavingPlanNotFoundError(f"Unknown saving plan ID: {plan_id}")
        return plan

    def total_plans(self) -> int:
        return len(self._plans)

    def plans(self, active_only: bool = False) -> List[SavingPlan]:
        return [p for p in self._plans.values() if p.is_active or not active_only]

    def snapshot(self) -> tuple[Dict[int, dict], int]:
        return (
            {pid: p.to_dict() for pid, p in self._plans.items()},
            self._next_id,
        )

    def restore(self, snapshot: tuple[Dict[int, dict], int]) -> None:
        plans, next_id = snapshot
        self._plans = {pid: SavingPlan(**data) for pid, data in plans.items()}
        self._next_id = next_id
