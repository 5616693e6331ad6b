"""Access supervision: capability roles and the global pause switch."""

from savingbank.access.control import (
    ADMIN_ROLE,
    DEFAULT_ADMIN_ROLE,
    LIQUIDITY_MANAGER_ROLE,
    MINTER_ROLE,
    PAUSER_ROLE,
    WITHDRAW_ROLE,
    ZERO_ADDRESS,
    AccessControl,
    is_zero_address,
)
from savingbank.access.pause import PauseSwitch

__all__ = [
    "ADMIN_ROLE",
    "AccessControl",
    "DEFAULT_ADMIN_ROLE",
    "LIQUIDITY_MANAGER_ROLE",
    "MINTER_ROLE",
    "PAUSER_ROLE",
    "PauseSwitch",
    "WITHDRAW_ROLE",
    "ZERO_ADDRESS",
    "is_zero_address",
]
