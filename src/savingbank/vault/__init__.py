"""Liquidity vault: segregated principal and interest funds."""

from savingbank.vault.liquidity import LiquidityVault

__all__ = ["LiquidityVault"]
