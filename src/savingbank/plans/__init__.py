"""Plan registry: catalogue of savings products."""

from savingbank.plans.registry import PlanRegistry, validate_plan_input

__all__ = ["PlanRegistry", "validate_plan_input"]
