"""Fungible asset interface and the in-memory implementation."""

from savingbank.asset.token import AssetToken, InMemoryAsset

__all__ = ["AssetToken", "InMemoryAsset"]
