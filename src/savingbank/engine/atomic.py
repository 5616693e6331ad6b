"""Whole-operation atomicity and reentrancy protection.

A mutating entry point runs as one unit of work: either every change it
makes (ledger, vault balance, certificate ownership, asset balances, audit
events) takes effect, or none does.

Participants expose snapshot()/restore(). The unit snapshots them before
the body runs and restores them, in reverse order, if the body raises.
The exception is always re-raised.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional, Protocol

from savingbank.errors import ReentrantCallError
from savingbank.persistence.event_log import EventLog


class Snapshottable(Protocol):
    def snapshot(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...


class ReentrancyGuard:
    """Mutual exclusion for one component's critical section.

    A call that re-enters while the section is held is rejected with
    ReentrantCallError; the holder releases on completion or failure.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def hold(self) -> Iterator[None]:
        if self._entered:
            raise ReentrantCallError(f"Reentrant call into {self._name}")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False


@contextmanager
def atomic(
    participants: Iterable[Snapshottable],
    event_log: Optional[EventLog] = None,
) -> Iterator[None]:
    """Run the enclosed block as an all-or-nothing unit."""
    snapshots = [(p, p.snapshot()) for p in participants]
    try:
        if event_log is None:
            yield
        else:
            with event_log.staged():
                yield
    except BaseException:
        for participant, snap in reversed(snapshots):
            participant.restore(snap)
        raise
