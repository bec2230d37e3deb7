from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Optional

from rescheduler.domain import CycleResult, Failed, HealthState

logger = logging.getLogger(__name__)


def _now() -> dt.datetime:
    return dt.datetime.now()


class HealthMonitor:
    """Tracks whether cycles keep working and pages the operator on transitions.

    At most one message per state change: one "working" message when cycles
    start succeeding again, and one escalation once an outage has lasted
    ``threshold``.
    """

    def __init__(
        self,
        notify: Callable[[str], None],
        *,
        state: Optional[HealthState] = None,
        threshold: dt.timedelta = dt.timedelta(minutes=60),
        clock: Callable[[], dt.datetime] = _now,
    ):
        self.notify = notify
        self.state = state if state is not None else HealthState()
        self.threshold = threshold
        self.clock = clock

    def record(self, result: CycleResult) -> None:
        if isinstance(result, Failed):
            self._record_failure(result.error)
        else:
            self._record_success()

    def _record_success(self) -> None:
        state = self.state
        if state.is_working:
            logger.info("Working properly")
        else:
            self.notify("Working properly")
            state.down_notified = False
        state.is_working = True
        state.down_since = None

    def _record_failure(self, error: BaseException) -> None:
        state = self.state
        now = self.clock()
        state.is_working = False
        if state.down_since is None:
            state.down_since = now

        message = f"There is a problem since {state.down_since:%Y-%m-%d %H:%M:%S} ({type(error).__name__}: {error})"
        if now - state.down_since >= self.threshold and not state.down_notified:
            self.notify(message)
            state.down_notified = True
        else:
            logger.warning(message)
