"""Shared test constants: principals, amounts and the starting clock."""

ADMIN = "admin"
PAUSER = "pauser"
ALICE = "alice"
BOB = "bob"
FEE_RECEIVER = "fee_receiver"

ONE_USDC = 1_000_000
START = 1_767_225_600  # 2026-01-01T00:00:00Z
