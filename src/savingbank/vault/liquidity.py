"""Liquidity vault: segregated pool that pays principal and interest.

The vault keeps its own accounting balance, separate from the raw asset
balance it holds. Only depositLiquidity raises it; only withdrawals lower
it. Asset sent to the vault by other means is held but never promised,
so the ledger balance can never exceed what the vault can actually pay.

Capabilities are role-gated, not ownership-gated:
    LIQUIDITY_MANAGER_ROLE  → deposit_liquidity
    WITHDRAW_ROLE           → withdraw_liquidity (held by the bank)
    DEFAULT_ADMIN_ROLE      → admin_withdraw (emergency sweep)
"""

from __future__ import annotations

import logging
from typing import Optional

from savingbank.access.control import (
    DEFAULT_ADMIN_ROLE,
    LIQUIDITY_MANAGER_ROLE,
    WITHDRAW_ROLE,
    AccessControl,
    is_zero_address,
)
from savingbank.asset.token import AssetToken
from savingbank.clock import Clock, to_datetime
from savingbank.engine.atomic import ReentrancyGuard, atomic
from savingbank.errors import (
    InsufficientVaultLiquidityError,
    ZeroAddressError,
    ZeroAmountError,
)
from savingbank.persistence.event_log import EventKind, EventLog

logger = logging.getLogger(__name__)


class LiquidityVault:
    """Role-gated pool of the deposit asset.

    Usage:
        vault = LiquidityVault(asset, access, clock)
        asset.approve("treasury", vault.address, 1_000)
        vault.deposit_liquidity("treasury", 1_000)
        vault.withdraw_liquidity("bank", 400, "alice")
    """

    def __init__(
        self,
        asset: AssetToken,
        access: AccessControl,
        clock: Clock,
        address: str = "vault",
        event_log: Optional[EventLog] = None,
    ) -> None:
        self.address = address
        self._asset = asset
        self._access = access
        self._clock = clock
        self._event_log = event_log
        self._balance = 0
        self._guard = ReentrancyGuard("vault")

    @property
    def access(self) -> AccessControl:
        return self._access

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_balance(self) -> int:
        """Ledger balance: what the vault has promised it can pay."""
        return self._balance

    def get_asset_balance(self) -> int:
        """Raw asset held by the vault. Always >= get_balance()."""
        return self._asset.balance_of(self.address)

    def get_token(self) -> AssetToken:
        return self._asset

    def can_withdraw(self, account: str) -> bool:
        return self._access.has_role(WITHDRAW_ROLE, account)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def deposit_liquidity(self, caller: str, amount: int) -> int:
        """Pull ``amount`` from caller into the pool. Returns new balance.

        The caller must have approved the vault for ``amount``.
        """
        self._access.check_role(LIQUIDITY_MANAGER_ROLE, caller)
        if amount <= 0:
            raise ZeroAmountError()

        with self._guard.hold(), atomic([self, self._asset], self._event_log):
            self._asset.transfer_from(self.address, caller, self.address, amount)
            self._balance += amount
            logger.info("Liquidity +%d from %s, balance %d", amount, caller, self._balance)
            self._emit(
                EventKind.LIQUIDITY_DEPOSITED,
                caller,
                {"caller": caller, "amount": amount, "new_balance": self._balance},
            )
        return self._balance

    def withdraw_liquidity(self, caller: str, amount: int, recipient: str) -> int:
        """Pay ``amount`` out of the pool to recipient. Returns new balance."""
        self._access.check_role(WITHDRAW_ROLE, caller)
        self._pay_out(caller, amount, recipient, EventKind.LIQUIDITY_WITHDRAWN)
        return self._balance

    def admin_withdraw(self, caller: str, amount: int) -> int:
        """Emergency sweep to the calling admin. Returns new balance."""
        self._access.check_role(DEFAULT_ADMIN_ROLE, caller)
        self._pay_out(caller, amount, caller, EventKind.ADMIN_WITHDRAWN)
        logger.warning("Admin %s swept %d from vault", caller, amount)
        return self._balance

    # ------------------------------------------------------------------
    # Atomic unit participation
    # ------------------------------------------------------------------

    def snapshot(self) -> int:
        return self._balance

    def restore(self, snapshot: int) -> None:
        self._balance = snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pay_out(self, caller: str, amount: int, recipient: str, kind: EventKind) -> None:
        if amount <= 0:
            raise ZeroAmountError()
        if is_zero_address(recipient):
            raise ZeroAddressError()
        if amount > self._balance:
            raise InsufficientVaultLiquidityError(amount, self._balance)

        with self._guard.hold(), atomic([self, self._asset], self._event_log):
            self._balance -= amount
            self._asset.transfer(self.address, recipient, amount)
            logger.info("Liquidity -%d to %s, balance %d", amount, recipient, self._balance)
            self._emit(
                kind,
                caller,
                {
                    "caller": caller,
                    "recipient": recipient,
                    "amount": amount,
                    "new_balance": self._balance,
                },
            )

    def _emit(self, kind: EventKind, caller: str, payload: dict) -> None:
        if self._event_log is None:
            return
        self._event_log.emit(
            kind, caller, payload, timestamp_utc=to_datetime(self._clock.now())
        )
