"""Global pause switch.

While paused, deposit creation, withdrawal and renewal fail immediately
with EnforcedPauseError for every caller, admins included. Read-only
operations stay available. Only PAUSER_ROLE holders toggle the switch.
"""

from __future__ import annotations

import logging
from typing import Optional

from savingbank.access.control import PAUSER_ROLE, AccessControl
from savingbank.clock import Clock, to_datetime
from savingbank.errors import EnforcedPauseError, ExpectedPauseError
from savingbank.persistence.event_log import EventKind, EventLog

logger = logging.getLogger(__name__)


class PauseSwitch:
    def __init__(
        self,
        access: AccessControl,
        event_log: Optional[EventLog] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._access = access
        self._event_log = event_log
        self._clock = clock
        self._paused = False

    @property
    def paused(self) -> bool:
        return self._paused

    def require_not_paused(self) -> None:
        if self._paused:
            raise EnforcedPauseError()

    def pause(self, caller: str) -> None:
        self._access.check_role(PAUSER_ROLE, caller)
        self.require_not_paused()
        self._paused = True
        logger.warning("System paused by %s", caller)
        self._emit(EventKind.PAUSED, caller)

    def unpause(self, caller: str) -> None:
        self._access.check_role(PAUSER_ROLE, caller)
        if not self._paused:
            raise ExpectedPauseError()
        self._paused = False
        logger.info("System unpaused by %s", caller)
        self._emit(EventKind.UNPAUSED, caller)

    def snapshot(self) -> bool:
        return self._paused

    def restore(self, snapshot: bool) -> None:
        self._paused = snapshot

    def _emit(self, kind: EventKind, caller: str) -> None:
        if self._event_log is None:
            return
        self._event_log.emit(
            kind,
            caller,
            {"scope": self._access.scope},
            timestamp_utc=to_datetime(self._clock.now()) if self._clock else None,
        )
