"""Shared fixtures: a fully wired savings system on a manual clock."""

from typing import Callable

import pytest

from savingbank.access.control import LIQUIDITY_MANAGER_ROLE, PAUSER_ROLE
from savingbank.clock import ManualClock
from savingbank.config import SavingBankConfig
from savingbank.factory import SavingBankSystem, build_system

from helpers import ADMIN, ALICE, BOB, ONE_USDC, PAUSER, START


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=START)


@pytest.fixture
def system(clock: ManualClock) -> SavingBankSystem:
    """Bank with the default 8% plan (id 1), funded users, a pauser."""
    s = build_system(SavingBankConfig(), ADMIN, clock=clock)
    s.asset.mint(ALICE, 1_000_000 * ONE_USDC)
    s.asset.mint(BOB, 1_000_000 * ONE_USDC)
    s.asset.mint(ADMIN, 10_000_000 * ONE_USDC)
    s.bank.grant_role(ADMIN, PAUSER_ROLE, PAUSER)
    s.vault.access.grant_role(ADMIN, LIQUIDITY_MANAGER_ROLE, ADMIN)
    return s


@pytest.fixture
def funded_system(system: SavingBankSystem) -> SavingBankSystem:
    """System whose vault holds 100,000 USDC of interest liquidity."""
    amount = 100_000 * ONE_USDC
    system.asset.approve(ADMIN, system.vault.address, amount)
    system.vault.deposit_liquidity(ADMIN, amount)
    return system


@pytest.fixture
def open_deposit(system: SavingBankSystem) -> Callable[..., int]:
    """Approve and create a deposit in one step."""

    def _open(user: str, amount: int, term_days: int, plan_id: int = 1) -> int:
        system.asset.approve(user, system.bank.address, amount)
        return system.bank.create_deposit(user, plan_id, amount, term_days)

    return _open
