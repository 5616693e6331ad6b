"""Deposit lifecycle engine: formulas, state machine and atomic units."""

from savingbank.engine.atomic import ReentrancyGuard, atomic
from savingbank.engine.lifecycle import DepositStateMachine

__all__ = ["DepositStateMachine", "ReentrancyGuard", "atomic"]
