"""Configuration: asset metadata, certificate naming, default plan, logging.

Values come from config/saving_bank.json. Environment variables (read
from the process or a .env file) override the file:

    SAVINGBANK_CONFIG     path to an alternative JSON config
    SAVINGBANK_EVENT_LOG  JSONL file for the audit log
    SAVINGBANK_LOG_LEVEL  logging level name (DEBUG, INFO, ...)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from savingbank.models.plan import SavingPlanInput
from savingbank.plans.registry import validate_plan_input

DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config" / "saving_bank.json"

_DEFAULT_PLAN = SavingPlanInput(
    name="Default Plan",
    min_deposit=100_000000,
    max_deposit=0,
    min_term_days=1,
    max_term_days=365,
    annual_rate_bps=800,
    penalty_rate_bps=100,
)


@dataclass(frozen=True)
class SavingBankConfig:
    asset_name: str = "Mock USD Coin"
    asset_symbol: str = "USDC"
    asset_decimals: int = 6
    certificate_name: str = "SavingBank Deposit Certificate"
    certificate_symbol: str = "SBDC"
    bank_address: str = "saving_bank"
    vault_address: str = "vault"
    default_plan: Optional[SavingPlanInput] = field(default=_DEFAULT_PLAN)
    event_log_path: Optional[Path] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.asset_decimals < 0:
            raise ValueError("asset_decimals must be non-negative")
        if self.default_plan is not None:
            validate_plan_input(self.default_plan)
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @staticmethod
    def from_dict(data: dict[str, Any]) -> SavingBankConfig:
        asset = data.get("asset", {})
        certificate = data.get("certificate", {})
        addresses = data.get("addresses", {})
        plan = data.get("default_plan", asdict(_DEFAULT_PLAN))
        log_path = data.get("event_log_path")
        return SavingBankConfig(
            asset_name=asset.get("name", "Mock USD Coin"),
            asset_symbol=asset.get("symbol", "USDC"),
            asset_decimals=int(asset.get("decimals", 6)),
            certificate_name=certificate.get("name", "SavingBank Deposit Certificate"),
            certificate_symbol=certificate.get("symbol", "SBDC"),
            bank_address=addresses.get("bank", "saving_bank"),
            vault_address=addresses.get("vault", "vault"),
            default_plan=SavingPlanInput(**plan) if plan is not None else None,
            event_log_path=Path(log_path) if log_path else None,
            log_level=data.get("log_level", "INFO"),
        )

    @staticmethod
    def from_file(path: Path) -> SavingBankConfig:
        with path.open("r", encoding="utf-8") as handle:
            return SavingBankConfig.from_dict(json.load(handle))

    @staticmethod
    def from_env(env_file: Optional[Path] = None) -> SavingBankConfig:
        """Load the JSON config, then apply environment overrides."""
        load_dotenv(env_file)
        path = Path(os.environ.get("SAVINGBANK_CONFIG", DEFAULT_CONFIG))
        config = (
            SavingBankConfig.from_file(path) if path.exists() else SavingBankConfig()
        )
        overrides: dict[str, Any] = {}
        if os.environ.get("SAVINGBANK_EVENT_LOG"):
            overrides["event_log_path"] = Path(os.environ["SAVINGBANK_EVENT_LOG"])
        if os.environ.get("SAVINGBANK_LOG_LEVEL"):
            overrides["log_level"] = os.environ["SAVINGBANK_LOG_LEVEL"]
        if not overrides:
            return config
        return replace(config, **overrides)


def configure_logging(level: str = "INFO") -> None:
    """Process-level logging setup. Call once from an entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
