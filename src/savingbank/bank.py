"""SavingBank: the deposit lifecycle engine.

This is the primary interface to the savings system. It orchestrates:
- Plan administration (create, update, activate, deactivate, penalty routing)
- Deposit lifecycle (create, withdraw, renew)
- Liquidity movements through the vault
- Certificate minting and the ownership / cooldown checks
- Supervision (roles, global pause)

Every mutating entry point is one atomic unit: all participating
components are snapshotted first and restored if anything fails, and the
audit events it emitted are discarded with it. A reentrancy guard rejects
any attempt to call back into the bank while an operation is in flight.

Authorization to withdraw or renew is keyed to the current certificate
owner, not to the original depositor: transferring the certificate
transfers the right to act, subject to the 24-hour cooldown.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional

from savingbank.access.control import (
    ADMIN_ROLE,
    PAUSER_ROLE,
    AccessControl,
)
from savingbank.access.pause import PauseSwitch
from savingbank.asset.token import AssetToken
from savingbank.certificates.registry import CertificateRegistry
from savingbank.clock import Clock, to_datetime
from savingbank.engine import interest
from savingbank.engine.atomic import ReentrancyGuard, atomic
from savingbank.engine.lifecycle import DepositStateMachine
from savingbank.errors import (
    CertificateInCooldownError,
    DepositNotFoundError,
    ExcessiveDepositAmountError,
    InsufficientDepositAmountError,
    InvalidTermDaysError,
    SavingBankError,
    SavingPlanNotActiveError,
    UnauthorizedError,
    ZeroAmountError,
)
from savingbank.models.deposit import Deposit, DepositStatus, WithdrawalResult
from savingbank.models.plan import SavingPlan, SavingPlanInput
from savingbank.persistence.event_log import EventKind, EventLog
from savingbank.plans.registry import PlanRegistry
from savingbank.vault.liquidity import LiquidityVault

logger = logging.getLogger(__name__)


class SavingBank:
    """Fixed-term savings engine facade.

    Usage:
        bank = SavingBank(asset, certificates, vault, clock, admin="admin")
        plan_id = bank.create_saving_plan("admin", plan_input)

        asset.approve("alice", bank.address, amount)
        deposit_id = bank.create_deposit("alice", plan_id, amount, 90)

        clock.advance_days(90)
        result = bank.withdraw_deposit("alice", deposit_id)

    The bank must hold LIQUIDITY_MANAGER_ROLE and WITHDRAW_ROLE on the vault
    and MINTER_ROLE on the certificate registry; savingbank.factory wires
    this up.
    """

    def __init__(
        self,
        asset: AssetToken,
        certificates: CertificateRegistry,
        vault: LiquidityVault,
        clock: Clock,
        admin: str,
        address: str = "saving_bank",
        event_log: Optional[EventLog] = None,
    ) -> None:
        self.address = address
        self._asset = asset
        self._certificates = certificates
        self._vault = vault
        self._clock = clock
        self._event_log = event_log

        self._access = AccessControl("saving_bank", admin, event_log, clock)
        self._access.grant_role(admin, ADMIN_ROLE, admin)
        self._access.grant_role(admin, PAUSER_ROLE, admin)
        self._pause = PauseSwitch(self._access, event_log, clock)

        self._plans = PlanRegistry()
        self._deposits: Dict[int, Deposit] = {}
        self._user_deposits: Dict[str, List[int]] = {}
        self._next_deposit_id = 1
        self._active_count = 0
        self._guard = ReentrancyGuard("saving_bank")

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def access(self) -> AccessControl:
        return self._access

    @property
    def certificates(self) -> CertificateRegistry:
        return self._certificates

    @property
    def vault(self) -> LiquidityVault:
        return self._vault

    @property
    def asset(self) -> AssetToken:
        return self._asset

    # ------------------------------------------------------------------
    # Plan administration
    # ------------------------------------------------------------------

    def create_saving_plan(self, caller: str, plan_input: SavingPlanInput) -> int:
        self._access.check_role(ADMIN_ROLE, caller)
        with self._operation("create_saving_plan"):
            plan_id = self._plans.create_plan(plan_input)
            plan = self._plans.get(plan_id)
            logger.info(
                "Plan %d '%s' created: %d bps, %d-%d days",
                plan_id, plan.name, plan.annual_rate_bps,
                plan.min_term_days, plan.max_term_days,
            )
            self._emit(EventKind.SAVING_PLAN_CREATED, caller, plan.to_dict())
        return plan_id

    def update_saving_plan(
        self,
        caller: str,
        plan_id: int,
        plan_input: SavingPlanInput,
    ) -> None:
        self._access.check_role(ADMIN_ROLE, caller)
        with self._operation("update_saving_plan"):
            plan = self._plans.update_plan(plan_id, plan_input)
            logger.info("Plan %d updated", plan_id)
            self._emit(EventKind.SAVING_PLAN_UPDATED, caller, plan.to_dict())

    def activate_saving_plan(self, caller: str, plan_id: int) -> None:
        self._access.check_role(ADMIN_ROLE, caller)
        with self._operation("activate_saving_plan"):
            self._plans.activate(plan_id)
            logger.info("Plan %d activated", plan_id)
            self._emit(EventKind.SAVING_PLAN_ACTIVATED, caller, {"plan_id": plan_id})

    def deactivate_saving_plan(self, caller: str, plan_id: int) -> None:
        self._access.check_role(ADMIN_ROLE, caller)
        with self._operation("deactivate_saving_plan"):
            self._plans.deactivate(plan_id)
            logger.info("Plan %d deactivated", plan_id)
            self._emit(EventKind.SAVING_PLAN_DEACTIVATED, caller, {"plan_id": plan_id})

    def update_penalty_receiver(
        self,
        caller: str,
        plan_id: int,
        receiver: Optional[str],
    ) -> None:
        """Route a plan's early-withdrawal penalties. Zero address clears."""
        self._access.check_role(ADMIN_ROLE, caller)
        with self._operation("update_penalty_receiver"):
            plan = self._plans.set_penalty_receiver(plan_id, receiver)
            logger.info("Plan %d penalty receiver → %s", plan_id, plan.penalty_receiver)
            self._emit(
                EventKind.PENALTY_RECEIVER_UPDATED,
                caller,
                {"plan_id": plan_id, "penalty_receiver": plan.penalty_receiver},
            )

    # ------------------------------------------------------------------
    # Deposit lifecycle
    # ------------------------------------------------------------------

    def create_deposit(
        self,
        caller: str,
        plan_id: int,
        amount: int,
        term_days: int,
    ) -> int:
        """Lock ``amount`` under a plan for ``term_days``. Returns the deposit id.

        The caller must have approved the bank to spend ``amount``. Funds
        go straight to the vault; the caller receives the certificate.
        """
        self._pause.require_not_paused()
        with self._operation("create_deposit"):
            plan = self._eligible_plan(plan_id, amount, term_days)

            self._asset.transfer_from(self.address, caller, self.address, amount)
            self._asset.approve(self.address, self._vault.address, amount)
            self._vault.deposit_liquidity(self.address, amount)

            deposit_id = self._open_deposit(caller, plan, amount, term_days)
        return deposit_id

    def withdraw_deposit(self, caller: str, deposit_id: int) -> WithdrawalResult:
        """Close an active deposit and pay the certificate holder.

        At or after maturity: principal + expected interest.
        Before maturity: principal minus a flat penalty, no interest. The
        penalty goes to the plan's penalty receiver if one is set,
        otherwise it stays in the vault.
        """
        self._pause.require_not_paused()
        with self._operation("withdraw_deposit"):
            deposit = self._actionable_deposit(caller, deposit_id)
            plan = self._plans.get(deposit.plan_id)
            now = self._clock.now()
            settlement = interest.settle(deposit, plan.penalty_rate_bps, now)

            DepositStateMachine.close(deposit, DepositStatus.WITHDRAWN, now)
            self._active_count -= 1

            if settlement.payout > 0:
                self._vault.withdraw_liquidity(self.address, settlement.payout, caller)
            penalty_receiver = plan.penalty_receiver if settlement.penalty > 0 else None
            if penalty_receiver is not None:
                self._vault.withdraw_liquidity(
                    self.address, settlement.penalty, penalty_receiver
                )

            result = WithdrawalResult(
                deposit_id=deposit_id,
                recipient=caller,
                payout=settlement.payout,
                interest=settlement.interest,
                penalty=settlement.penalty,
                is_early=settlement.is_early,
                penalty_receiver=penalty_receiver,
            )
            logger.info(
                "Deposit %d withdrawn by %s: payout %d, interest %d, penalty %d%s",
                deposit_id, caller, result.payout, result.interest, result.penalty,
                " (early)" if result.is_early else "",
            )
            self._emit(
                EventKind.DEPOSIT_WITHDRAWN,
                caller,
                {
                    "deposit_id": deposit_id,
                    "depositor": caller,
                    "payout": result.payout,
                    "interest": result.interest,
                    "penalty": result.penalty,
                    "is_early": result.is_early,
                },
            )
        return result

    def renew_deposit(
        self,
        caller: str,
        deposit_id: int,
        new_plan_id: int,
        new_term_days: int,
    ) -> int:
        """Roll a matured deposit, interest included, into a new one.

        No funds leave the vault. The old deposit becomes RENEWED and a new
        deposit with a fresh certificate (not in cooldown) is opened for the
        caller. Returns the new deposit id.
        """
        self._pause.require_not_paused()
        with self._operation("renew_deposit"):
            deposit = self._actionable_deposit(caller, deposit_id)
            now = self._clock.now()
            DepositStateMachine.require_matured(deposit, now)

            new_principal = interest.renewal_principal(deposit)
            plan = self._eligible_plan(new_plan_id, new_principal, new_term_days)

            DepositStateMachine.close(deposit, DepositStatus.RENEWED, now)
            self._active_count -= 1

            new_id = self._next_deposit_id
            deposit.renewed_into = new_id
            logger.info(
                "Deposit %d renewed into %d by %s: principal %d on plan %d",
                deposit_id, new_id, caller, new_principal, new_plan_id,
            )
            self._emit(
                EventKind.DEPOSIT_RENEWED,
                caller,
                {
                    "old_deposit_id": deposit_id,
                    "new_deposit_id": new_id,
                    "depositor": caller,
                    "new_principal": new_principal,
                    "new_plan_id": new_plan_id,
                },
            )
            self._open_deposit(
                caller, plan, new_principal, new_term_days, renewed_from=deposit_id
            )
        return new_id

    # ------------------------------------------------------------------
    # Vault administration
    # ------------------------------------------------------------------

    def deposit_to_vault(self, caller: str, amount: int) -> int:
        """Add liquidity through the bank. Caller must approve the bank."""
        self._access.check_role(ADMIN_ROLE, caller)
        if amount <= 0:
            raise ZeroAmountError()
        with self._operation("deposit_to_vault"):
            self._asset.transfer_from(self.address, caller, self.address, amount)
            self._asset.approve(self.address, self._vault.address, amount)
            balance = self._vault.deposit_liquidity(self.address, amount)
        return balance

    def withdraw_from_vault(self, caller: str, amount: int) -> int:
        """Take liquidity out of the vault to the calling admin."""
        self._access.check_role(ADMIN_ROLE, caller)
        with self._operation("withdraw_from_vault"):
            balance = self._vault.withdraw_liquidity(self.address, amount, caller)
        return balance

    # ------------------------------------------------------------------
    # Supervision
    # ------------------------------------------------------------------

    @property
    def paused(self) -> bool:
        return self._pause.paused

    def pause(self, caller: str) -> None:
        with self._operation("pause"):
            self._pause.pause(caller)

    def unpause(self, caller: str) -> None:
        with self._operation("unpause"):
            self._pause.unpause(caller)

    def has_role(self, role: str, account: str) -> bool:
        return self._access.has_role(role, account)

    def grant_role(self, caller: str, role: str, account: str) -> bool:
        with self._operation("grant_role"):
            return self._access.grant_role(caller, role, account)

    def revoke_role(self, caller: str, role: str, account: str) -> bool:
        with self._operation("revoke_role"):
            return self._access.revoke_role(caller, role, account)

    def renounce_role(self, caller: str, role: str) -> bool:
        with self._operation("renounce_role"):
            return self._access.renounce_role(caller, role)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_deposit(self, deposit_id: int) -> Deposit:
        return replace(self._get_deposit(deposit_id))

    def get_saving_plan(self, plan_id: int) -> SavingPlan:
        return replace(self._plans.get(plan_id))

    def get_saving_plans(self, active_only: bool = False) -> List[SavingPlan]:
        return [replace(p) for p in self._plans.plans(active_only)]

    def get_total_plans(self) -> int:
        return self._plans.total_plans()

    def get_penalty_receiver(self, plan_id: int) -> Optional[str]:
        return self._plans.get_penalty_receiver(plan_id)

    def get_user_deposit_ids(self, address: str) -> List[int]:
        """Ids of deposits opened by ``address`` (creations and renewals)."""
        return list(self._user_deposits.get(address, []))

    def get_total_deposits(self) -> int:
        return len(self._deposits)

    def get_active_deposit_count(self) -> int:
        return self._active_count

    def is_deposit_mature(self, deposit_id: int) -> bool:
        return self._get_deposit(deposit_id).is_mature(self._clock.now())

    def calculate_expected_interest(
        self,
        amount: int,
        plan_id: int,
        term_days: int,
    ) -> int:
        plan = self._plans.get(plan_id)
        return interest.expected_interest(amount, plan.annual_rate_bps, term_days)

    def calculate_early_withdrawal_penalty(self, deposit_id: int) -> int:
        """Penalty a withdrawal right now would incur (0 once matured)."""
        deposit = self._get_deposit(deposit_id)
        plan = self._plans.get(deposit.plan_id)
        return interest.settle(deposit, plan.penalty_rate_bps, self._clock.now()).penalty

    def status(self) -> dict[str, Any]:
        return {
            "paused": self._pause.paused,
            "total_plans": self._plans.total_plans(),
            "active_plans": len(self._plans.plans(active_only=True)),
            "total_deposits": len(self._deposits),
            "active_deposits": self._active_count,
            "vault_balance": self._vault.get_balance(),
            "vault_asset_balance": self._vault.get_asset_balance(),
            "certificates_issued": self._certificates.total_supply,
            "deposits_by_status": self._count_deposits_by_status(),
        }

    # ------------------------------------------------------------------
    # Atomic unit participation
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple:
        return (
            {did: replace(d) for did, d in self._deposits.items()},
            {user: list(ids) for user, ids in self._user_deposits.items()},
            self._next_deposit_id,
            self._active_count,
        )

    def restore(self, snapshot: tuple) -> None:
        deposits, user_deposits, next_id, active_count = snapshot
        self._deposits = {did: replace(d) for did, d in deposits.items()}
        self._user_deposits = {user: list(ids) for user, ids in user_deposits.items()}
        self._next_deposit_id = next_id
        self._active_count = active_count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Guarded, all-or-nothing execution of one entry point."""
        participants = [
            self,
            self._plans,
            self._access,
            self._pause,
            self._certificates,
            self._vault,
            self._asset,
        ]
        try:
            with self._guard.hold(), atomic(participants, self._event_log):
                yield
        except SavingBankError as e:
            logger.warning("%s rejected: %s", name, e)
            raise

    def _eligible_plan(self, plan_id: int, amount: int, term_days: int) -> SavingPlan:
        """Check a plan accepts this amount and term."""
        plan = self._plans.get(plan_id)
        if not plan.is_active:
            raise SavingPlanNotActiveError(f"Saving plan {plan_id} is not active")
        if amount <= 0:
            raise ZeroAmountError()
        if amount < plan.min_deposit:
            raise InsufficientDepositAmountError(
                f"Amount {amount} is below plan minimum {plan.min_deposit}"
            )
        if plan.max_deposit > 0 and amount > plan.max_deposit:
            raise ExcessiveDepositAmountError(
                f"Amount {amount} exceeds plan maximum {plan.max_deposit}"
            )
        if not plan.accepts_term(term_days):
            raise InvalidTermDaysError(
                f"Term of {term_days} days is outside plan range "
                f"[{plan.min_term_days}, {plan.max_term_days}]"
            )
        return plan

    def _actionable_deposit(self, caller: str, deposit_id: int) -> Deposit:
        """The deposit, provided the caller may act on it right now."""
        deposit = self._get_deposit(deposit_id)
        if self._certificates.owner_of(deposit.certificate_id) != caller:
            raise UnauthorizedError()
        DepositStateMachine.require_active(deposit)
        remaining = self._certificates.get_remaining_cooldown(deposit.certificate_id)
        if remaining > 0:
            raise CertificateInCooldownError(deposit.certificate_id, remaining)
        return deposit

    def _open_deposit(
        self,
        depositor: str,
        plan: SavingPlan,
        principal: int,
        term_days: int,
        renewed_from: Optional[int] = None,
    ) -> int:
        now = self._clock.now()
        deposit_id = self._next_deposit_id
        deposit = Deposit(
            deposit_id=deposit_id,
            depositor=depositor,
            plan_id=plan.plan_id,
            principal=principal,
            term_days=term_days,
            deposit_date=now,
            maturity_date=interest.maturity_date(now, term_days),
            expected_interest=interest.expected_interest(
                principal, plan.annual_rate_bps, term_days
            ),
            renewed_from=renewed_from,
        )
        self._certificates.mint(self.address, depositor, deposit_id)
        self._deposits[deposit_id] = deposit
        self._user_deposits.setdefault(depositor, []).append(deposit_id)
        self._next_deposit_id += 1
        self._active_count += 1

        logger.info(
            "Deposit %d opened by %s: %d for %d days on plan %d, interest %d",
            deposit_id, depositor, principal, term_days, plan.plan_id,
            deposit.expected_interest,
        )
        self._emit(
            EventKind.DEPOSIT_CREATED,
            depositor,
            {
                "deposit_id": deposit_id,
                "depositor": depositor,
                "plan_id": plan.plan_id,
                "amount": principal,
                "term_days": term_days,
                "deposit_date": deposit.deposit_date,
                "maturity_date": deposit.maturity_date,
                "expected_interest": deposit.expected_interest,
                "certificate_id": deposit.certificate_id,
            },
        )
        return deposit_id

    def _get_deposit(self, deposit_id: int) -> Deposit:
        deposit = self._deposits.get(deposit_id)
        if deposit is None:
            raise DepositNotFoundError(f"Unknown deposit ID: {deposit_id}")
        return deposit

    def _count_deposits_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for d in self._deposits.values():
            counts[d.status.value] = counts.get(d.status.value, 0) + 1
        return counts

    def _emit(self, kind: EventKind, caller: str, payload: dict) -> None:
        if self._event_log is None:
            return
        self._event_log.emit(
            kind, caller, payload, timestamp_utc=to_datetime(self._clock.now())
        )
