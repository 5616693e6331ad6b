"""Error taxonomy for the savings engine.

Every rejected operation raises one of these. Each category also derives
from the closest builtin so callers can catch broadly (ValueError,
LookupError, PermissionError) or precisely (the named class).

Categories:
    validation     malformed plan input or deposit amount/term
    lookup         unknown plan, deposit or certificate
    state          plan inactive, deposit not active / not matured, pause
    authorization  caller lacks a role or does not own the certificate
    security       certificate still in post-transfer cooldown
    resource       vault liquidity, zero amount, zero address, asset funds
"""

from __future__ import annotations


class SavingBankError(Exception):
    """Root of all savings engine errors."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(SavingBankError, ValueError):
    """Caller supplied invalid input. Rejected before any mutation."""


class InvalidTermDaysError(ValidationError):
    pass


class InvalidInterestRateError(ValidationError):
    pass


class InvalidPenaltyRateError(ValidationError):
    pass


class InvalidDepositBoundsError(ValidationError):
    pass


class InsufficientDepositAmountError(ValidationError):
    pass


class ExcessiveDepositAmountError(ValidationError):
    pass


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

class LookupFailure(SavingBankError, LookupError):
    """A referenced record does not exist."""


class SavingPlanNotFoundError(LookupFailure):
    pass


class DepositNotFoundError(LookupFailure):
    pass


class CertificateNotFoundError(LookupFailure):
    pass


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class StateError(SavingBankError):
    """The target record is not in a state that allows the operation."""


class SavingPlanNotActiveError(StateError):
    pass


class PlanStateError(StateError):
    pass


class DepositNotActiveError(StateError):
    pass


class DepositNotMaturedError(StateError):
    pass


class InvalidTransitionError(StateError):
    pass


class CertificateAlreadyExistsError(StateError):
    pass


class EnforcedPauseError(StateError):
    """Operation attempted while the system is paused."""

    def __init__(self) -> None:
        super().__init__("EnforcedPause: system is paused")


class ExpectedPauseError(StateError):
    """Unpause attempted while the system is not paused."""

    def __init__(self) -> None:
        super().__init__("ExpectedPause: system is not paused")


class AuditLogNotEmptyError(StateError):
    """A fresh system was asked to start on an audit log that already has history."""

    def __init__(self, path: object, count: int) -> None:
        self.path = path
        self.count = count
        super().__init__(f"Audit log at {path} already holds {count} events")


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class UnauthorizedError(SavingBankError, PermissionError):
    """Caller may not perform the operation.

    The message never says which role or ownership check failed.
    """

    def __init__(self) -> None:
        super().__init__("Unauthorized")


# ---------------------------------------------------------------------------
# Security
# ---------------------------------------------------------------------------

class SecurityError(SavingBankError):
    pass


class CertificateInCooldownError(SecurityError):
    """Certificate was transferred less than 24 hours ago."""

    def __init__(self, certificate_id: int, remaining_seconds: int) -> None:
        self.certificate_id = certificate_id
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Certificate {certificate_id} is in transfer cooldown "
            f"({remaining_seconds}s remaining)"
        )


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------

class ResourceError(SavingBankError):
    pass


class ZeroAmountError(ResourceError, ValueError):
    def __init__(self) -> None:
        super().__init__("Amount must be positive")


class ZeroAddressError(ResourceError, ValueError):
    def __init__(self) -> None:
        super().__init__("Zero address is not a valid recipient")


class InsufficientVaultLiquidityError(ResourceError):
    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient vault liquidity: requested {requested}, "
            f"available {available}"
        )


class InsufficientBalanceError(ResourceError):
    pass


class InsufficientAllowanceError(ResourceError):
    pass


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class ReentrantCallError(SavingBankError, RuntimeError):
    """A guarded operation was re-entered before it completed."""
