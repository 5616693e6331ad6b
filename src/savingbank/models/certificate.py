"""Certificate model: the transferable right to act on a deposit."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Seconds a new owner must wait after a transfer before acting.
TRANSFER_COOLDOWN_SECONDS = 86_400


@dataclass
class Certificate:
    """Ownership record for one deposit.

    last_transfer_time stays None after minting, so the original depositor
    is never in cooldown.
    """
    certificate_id: int
    owner: str
    approved: Optional[str] = None
    last_transfer_time: Optional[int] = None

    def remaining_cooldown(self, now: int) -> int:
        if self.last_transfer_time is None:
            return 0
        elapsed = now - self.last_transfer_time
        return max(0, TRANSFER_COOLDOWN_SECONDS - elapsed)

    def in_cooldown(self, now: int) -> bool:
        return self.remaining_cooldown(now) > 0
