"""The stable-value asset deposits are denominated in.

The engine treats the asset as an opaque transferable balance. AssetToken
is the interface it relies on; InMemoryAsset is a complete in-process
implementation used for local runs and tests.

Callers are passed explicitly: ``transfer(sender, ...)`` moves the
sender's own funds, ``transfer_from(spender, owner, ...)`` spends an
allowance the owner granted to spender with ``approve``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from savingbank.access.control import is_zero_address
from savingbank.errors import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    ZeroAddressError,
)

logger = logging.getLogger(__name__)

TransferHook = Callable[[str, str, int], None]


class AssetToken(Protocol):
    symbol: str
    decimals: int

    def balance_of(self, account: str) -> int:
        ...

    def allowance(self, owner: str, spender: str) -> int:
        ...

    def approve(self, owner: str, spender: str, amount: int) -> None:
        ...

    def transfer(self, sender: str, to: str, amount: int) -> None:
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        ...

    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


class InMemoryAsset:
    """Fungible token with balances and allowances held in dictionaries.

    on_transfer, when set, is called after every balance movement with
    (from, to, amount). It runs inside the caller's operation, which makes
    it the place a hostile receiver would try to re-enter the bank.
    """

    def __init__(
        self,
        name: str = "Mock USD Coin",
        symbol: str = "USDC",
        decimals: int = 6,
    ) -> None:
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0
        self.on_transfer: Optional[TransferHook] = None

    @property
    def unit(self) -> int:
        """Smallest-unit multiplier for one whole token."""
        return 10 ** self.decimals

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, to: str, amount: int) -> None:
        if is_zero_address(to):
            raise ZeroAddressError()
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")
        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if is_zero_address(spender):
            raise ZeroAddressError()
        if amount < 0:
            raise ValueError("Allowance must be non-negative")
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self._move(sender, to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        current = self.allowance(owner, spender)
        if current < amount:
            raise InsufficientAllowanceError(
                f"Allowance of {spender} over {owner} is {current}, need {amount}"
            )
        self._allowances[(owner, spender)] = current - amount
        self._move(owner, to, amount)

    def snapshot(self) -> Tuple[Dict[str, int], Dict[Tuple[str, str], int], int]:
        return dict(self._balances), dict(self._allowances), self._total_supply

    def restore(self, snapshot: Tuple[Dict[str, int], Dict[Tuple[str, str], int], int]) -> None:
        balances, allowances, total = snapshot
        self._balances = dict(balances)
        self._allowances = dict(allowances)
        self._total_supply = total

    def _move(self, sender: str, to: str, amount: int) -> None:
        if is_zero_address(to):
            raise ZeroAddressError()
        if amount < 0:
            raise ValueError("Transfer amount must be non-negative")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalanceError(
                f"Balance of {sender} is {balance}, need {amount}"
            )
        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount
        logger.debug("%s: %s → %s %d", self.symbol, sender, to, amount)
        if self.on_transfer is not None:
            self.on_transfer(sender, to, amount)
