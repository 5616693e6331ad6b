"""Tests for deposit creation and withdrawal, proves payouts follow the plan terms."""

import pytest

from savingbank.errors import (
    CertificateInCooldownError,
    DepositNotActiveError,
    DepositNotFoundError,
    ExcessiveDepositAmountError,
    InsufficientDepositAmountError,
    InvalidTermDaysError,
    SavingPlanNotFoundError,
    UnauthorizedError,
    ZeroAmountError,
)
from savingbank.models.deposit import DepositStatus
from savingbank.models.plan import SavingPlanInput
from savingbank.persistence.event_log import EventKind

from helpers import ADMIN, ALICE, BOB, FEE_RECEIVER, ONE_USDC, START

DAY = 86_400


class TestCreateDeposit:
    def test_records_terms(self, system, open_deposit) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        deposit = system.bank.get_deposit(deposit_id)
        assert deposit_id == 1
        assert deposit.depositor == ALICE
        assert deposit.principal == 1_000 * ONE_USDC
        assert deposit.deposit_date == START
        assert deposit.maturity_date == START + 30 * DAY
        assert deposit.expected_interest == 6_575342
        assert deposit.status == DepositStatus.ACTIVE

    def test_funds_move_to_vault(self, system, open_deposit) -> None:
        before = system.asset.balance_of(ALICE)
        open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        assert system.asset.balance_of(ALICE) == before - 1_000 * ONE_USDC
        assert system.asset.balance_of(system.bank.address) == 0
        assert system.vault.get_balance() == 1_000 * ONE_USDC

    def test_certificate_minted_to_depositor(self, system, open_deposit) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        assert system.certificates.owner_of(deposit_id) == ALICE
        assert not system.certificates.is_in_cooldown(deposit_id)

    def test_ids_are_sequential(self, system, open_deposit) -> None:
        first = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        second = open_deposit(BOB, 500 * ONE_USDC, 60)
        third = open_deposit(ALICE, 200 * ONE_USDC, 90)
        assert (first, second, third) == (1, 2, 3)
        assert system.bank.get_user_deposit_ids(ALICE) == [1, 3]
        assert system.bank.get_total_deposits() == 3
        assert system.bank.get_active_deposit_count() == 3

    def test_created_event(self, system, open_deposit) -> None:
        open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        event = system.event_log.events(EventKind.DEPOSIT_CREATED)[0]
        assert event.payload["deposit_id"] == 1
        assert event.payload["amount"] == 1_000 * ONE_USDC
        assert event.payload["expected_interest"] == 6_575342
        assert event.payload["certificate_id"] == 1

    def test_unknown_plan(self, open_deposit) -> None:
        with pytest.raises(SavingPlanNotFoundError):
            open_deposit(ALICE, 1_000 * ONE_USDC, 30, plan_id=9)

    def test_below_minimum(self, open_deposit) -> None:
        with pytest.raises(InsufficientDepositAmountError):
            open_deposit(ALICE, 100 * ONE_USDC - 1, 30)

    def test_at_minimum_accepted(self, open_deposit) -> None:
        assert open_deposit(ALICE, 100 * ONE_USDC, 30) == 1

    def test_zero_amount(self, system) -> None:
        with pytest.raises(ZeroAmountError):
            system.bank.create_deposit(ALICE, 1, 0, 30)

    def test_above_maximum(self, system, open_deposit) -> None:
        plan_id = system.bank.create_saving_plan(
            ADMIN,
            SavingPlanInput("Capped", 0, 500 * ONE_USDC, 1, 30, 500, 100),
        )
        with pytest.raises(ExcessiveDepositAmountError):
            open_deposit(ALICE, 500 * ONE_USDC + 1, 10, plan_id=plan_id)

    @pytest.mark.parametrize("term_days", [0, 366])
    def test_term_out_of_range(self, open_deposit, term_days: int) -> None:
        with pytest.raises(InvalidTermDaysError):
            open_deposit(ALICE, 1_000 * ONE_USDC, term_days)

    def test_term_bounds_inclusive(self, open_deposit) -> None:
        assert open_deposit(ALICE, 1_000 * ONE_USDC, 1) == 1
        assert open_deposit(ALICE, 1_000 * ONE_USDC, 365) == 2

    def test_unknown_deposit(self, system) -> None:
        with pytest.raises(DepositNotFoundError):
            system.bank.get_deposit(42)


class TestWithdrawAtMaturity:
    def test_pays_principal_and_interest(self, funded_system, open_deposit, clock) -> None:
        bank, asset = funded_system.bank, funded_system.asset
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        before = asset.balance_of(ALICE)
        clock.advance_days(30)
        assert bank.is_deposit_mature(deposit_id)

        result = bank.withdraw_deposit(ALICE, deposit_id)
        assert result.payout == 1_006_575342
        assert result.interest == 6_575342
        assert result.penalty == 0
        assert not result.is_early
        assert asset.balance_of(ALICE) == before + 1_006_575342

    def test_closes_deposit(self, funded_system, open_deposit, clock) -> None:
        bank = funded_system.bank
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        clock.advance_days(31)
        bank.withdraw_deposit(ALICE, deposit_id)
        deposit = bank.get_deposit(deposit_id)
        assert deposit.status == DepositStatus.WITHDRAWN
        assert deposit.closed_at == clock.now()
        assert bank.get_active_deposit_count() == 0
        assert bank.get_total_deposits() == 1

    def test_second_withdrawal_rejected(self, funded_system, open_deposit, clock) -> None:
        bank = funded_system.bank
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        clock.advance_days(30)
        bank.withdraw_deposit(ALICE, deposit_id)
        with pytest.raises(DepositNotActiveError):
            bank.withdraw_deposit(ALICE, deposit_id)

    def test_withdrawn_event(self, funded_system, open_deposit, clock) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        clock.advance_days(30)
        funded_system.bank.withdraw_deposit(ALICE, deposit_id)
        event = funded_system.event_log.events(EventKind.DEPOSIT_WITHDRAWN)[0]
        assert event.payload == {
            "deposit_id": deposit_id,
            "depositor": ALICE,
            "payout": 1_006_575342,
            "interest": 6_575342,
            "penalty": 0,
            "is_early": False,
        }


class TestEarlyWithdrawal:
    def test_penalty_no_interest(self, system, open_deposit, clock) -> None:
        bank, asset = system.bank, system.asset
        deposit_id = open_deposit(ALICE, 10_000 * ONE_USDC, 90)
        clock.advance_days(45)
        assert bank.calculate_early_withdrawal_penalty(deposit_id) == 100 * ONE_USDC

        before = asset.balance_of(ALICE)
        result = bank.withdraw_deposit(ALICE, deposit_id)
        assert result.is_early
        assert result.interest == 0
        assert result.penalty == 100 * ONE_USDC
        assert result.payout == 9_900 * ONE_USDC

    def test_penalty_uses_rate_in_force_at_withdrawal(
        self, system, open_deposit, clock
    ) -> None:
        bank = system.bank
        deposit_id = open_deposit(ALICE, 10_000 * ONE_USDC, 90)
        interest = bank.get_deposit(deposit_id).expected_interest
        bank.update_saving_plan(
            ADMIN, 1, SavingPlanInput("Default Plan", 100 * ONE_USDC, 0, 1, 365, 800, 500)
        )
        clock.advance_days(45)
        assert bank.calculate_early_withdrawal_penalty(deposit_id) == 500 * ONE_USDC

        result = bank.withdraw_deposit(ALICE, deposit_id)
        assert result.penalty == 500 * ONE_USDC
        assert result.payout == 9_500 * ONE_USDC
        assert bank.get_deposit(deposit_id).expected_interest == interest
        assert asset.balance_of(ALICE) == before + 9_900 * ONE_USDC

    def test_penalty_stays_in_vault_without_receiver(self, system, open_deposit) -> None:
        deposit_id = open_deposit(ALICE, 10_000 * ONE_USDC, 90)
        system.bank.withdraw_deposit(ALICE, deposit_id)
        assert system.vault.get_balance() == 100 * ONE_USDC

    def test_penalty_routed_to_receiver(self, system, open_deposit) -> None:
        system.bank.update_penalty_receiver(ADMIN, 1, FEE_RECEIVER)
        deposit_id = open_deposit(ALICE, 10_000 * ONE_USDC, 90)
        result = system.bank.withdraw_deposit(ALICE, deposit_id)
        assert result.penalty_receiver == FEE_RECEIVER
        assert system.asset.balance_of(FEE_RECEIVER) == 100 * ONE_USDC
        assert system.vault.get_balance() == 0

    def test_no_penalty_after_maturity(self, funded_system, open_deposit, clock) -> None:
        deposit_id = open_deposit(ALICE, 10_000 * ONE_USDC, 90)
        clock.advance_days(90)
        assert funded_system.bank.calculate_early_withdrawal_penalty(deposit_id) == 0

    def test_one_second_before_maturity_is_early(self, system, open_deposit, clock) -> None:
        deposit_id = open_deposit(ALICE, 10_000 * ONE_USDC, 90)
        clock.advance(90 * DAY - 1)
        assert not system.bank.is_deposit_mature(deposit_id)
        assert system.bank.withdraw_deposit(ALICE, deposit_id).is_early


class TestCertificateOwnership:
    def test_stranger_cannot_withdraw(self, system, open_deposit) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        with pytest.raises(UnauthorizedError):
            system.bank.withdraw_deposit(BOB, deposit_id)
        assert system.bank.get_deposit(deposit_id).is_active

    def test_original_depositor_loses_right_after_transfer(
        self, system, open_deposit
    ) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        system.certificates.transfer(ALICE, deposit_id, BOB)
        with pytest.raises(UnauthorizedError):
            system.bank.withdraw_deposit(ALICE, deposit_id)

    def test_new_owner_blocked_during_cooldown(self, system, open_deposit, clock) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        system.certificates.transfer(ALICE, deposit_id, BOB)
        clock.advance(3_600)
        with pytest.raises(CertificateInCooldownError) as exc:
            system.bank.withdraw_deposit(BOB, deposit_id)
        assert exc.value.certificate_id == deposit_id
        assert exc.value.remaining_seconds == DAY - 3_600

    def test_new_owner_paid_after_cooldown(self, system, open_deposit, clock) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        system.certificates.transfer(ALICE, deposit_id, BOB)
        clock.advance(DAY)
        before = system.asset.balance_of(BOB)
        result = system.bank.withdraw_deposit(BOB, deposit_id)
        assert result.recipient == BOB
        assert system.asset.balance_of(BOB) == before + result.payout

    def test_depositor_field_is_historical(self, system, open_deposit, clock) -> None:
        deposit_id = open_deposit(ALICE, 1_000 * ONE_USDC, 30)
        system.certificates.transfer(ALICE, deposit_id, BOB)
        assert system.bank.get_deposit(deposit_id).depositor == ALICE
        assert system.bank.get_user_deposit_ids(BOB) == []
