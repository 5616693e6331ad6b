"""Core data models for the savings engine."""

from savingbank.models.certificate import Certificate, TRANSFER_COOLDOWN_SECONDS
from savingbank.models.deposit import Deposit, DepositStatus, WithdrawalResult
from savingbank.models.plan import BASIS_POINTS, SavingPlan, SavingPlanInput

__all__ = [
    "BASIS_POINTS",
    "Certificate",
    "Deposit",
    "DepositStatus",
    "SavingPlan",
    "SavingPlanInput",
    "TRANSFER_COOLDOWN_SECONDS",
    "WithdrawalResult",
]
