"""Wire a complete savings system from configuration.

Creates the asset, certificate registry, vault, audit log and bank, then
grants the bank the capabilities it needs:
    vault         LIQUIDITY_MANAGER_ROLE, WITHDRAW_ROLE
    certificates  MINTER_ROLE
and opens the configured default plan. The audit log must start empty:
ids restart at 1, so a log with history is refused.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from savingbank.access.control import (
    LIQUIDITY_MANAGER_ROLE,
    MINTER_ROLE,
    WITHDRAW_ROLE,
    AccessControl,
)
from savingbank.asset.token import AssetToken, InMemoryAsset
from savingbank.bank import SavingBank
from savingbank.certificates.registry import CertificateRegistry
from savingbank.clock import Clock, SystemClock
from savingbank.config import SavingBankConfig
from savingbank.errors import AuditLogNotEmptyError
from savingbank.persistence.event_log import EventLog
from savingbank.vault.liquidity import LiquidityVault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavingBankSystem:
    bank: SavingBank
    vault: LiquidityVault
    certificates: CertificateRegistry
    asset: AssetToken
    event_log: EventLog
    clock: Clock
    default_plan_id: Optional[int] = None


def build_system(
    config: SavingBankConfig,
    admin: str,
    clock: Optional[Clock] = None,
    asset: Optional[AssetToken] = None,
    event_log: Optional[EventLog] = None,
) -> SavingBankSystem:
    """Create and connect every component. ``admin`` becomes super-admin."""
    clock = clock or SystemClock()
    if event_log is None:
        event_log = EventLog(storage_path=config.event_log_path)
    if event_log.count:
        raise AuditLogNotEmptyError(event_log.storage_path, event_log.count)
    if asset is None:
        asset = InMemoryAsset(
            name=config.asset_name,
            symbol=config.asset_symbol,
            decimals=config.asset_decimals,
        )

    certificates = CertificateRegistry(
        AccessControl("certificates", admin, event_log, clock),
        clock,
        name=config.certificate_name,
        symbol=config.certificate_symbol,
        event_log=event_log,
    )
    vault = LiquidityVault(
        asset,
        AccessControl("vault", admin, event_log, clock),
        clock,
        address=config.vault_address,
        event_log=event_log,
    )
    bank = SavingBank(
        asset,
        certificates,
        vault,
        clock,
        admin,
        address=config.bank_address,
        event_log=event_log,
    )

    vault.access.grant_role(admin, LIQUIDITY_MANAGER_ROLE, bank.address)
    vault.access.grant_role(admin, WITHDRAW_ROLE, bank.address)
    certificates.access.grant_role(admin, MINTER_ROLE, bank.address)

    default_plan_id = None
    if config.default_plan is not None:
        default_plan_id = bank.create_saving_plan(admin, config.default_plan)

    logger.info(
        "SavingBank ready: bank=%s vault=%s asset=%s default_plan=%s",
        bank.address, vault.address, config.asset_symbol, default_plan_id,
    )
    return SavingBankSystem(
        bank=bank,
        vault=vault,
        certificates=certificates,
        asset=asset,
        event_log=event_log,
        clock=clock,
        default_plan_id=default_plan_id,
    )
