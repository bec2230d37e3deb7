from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Callable, Optional

from rescheduler.browser import open_session
from rescheduler.config import Settings
from rescheduler.domain import (
    Aborted,
    CycleResult,
    Failed,
    NoBetterDate,
    OrchestratorState,
    Rescheduled,
)
from rescheduler.health import HealthMonitor
from rescheduler.notifier import Notifier
from rescheduler.workflow import RescheduleWorkflow

logger = logging.getLogger(__name__)


def _short_exc(exc: BaseException) -> str:
    # Type and message only; the loop logs one line per failed cycle.
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def build_monitor(settings: Settings, state: OrchestratorState, notifier: Notifier) -> HealthMonitor:
    return HealthMonitor(
        notifier.send,
        state=state.health,
        threshold=dt.timedelta(minutes=settings.outage_notify_minutes),
    )


def run_cycle(settings: Settings, current_date: dt.date, notify: Callable[[str], None]) -> CycleResult:
    """Scan and, when an earlier date is free, reschedule onto it.

    The browser lives exactly as long as the cycle. Exceptions propagate.
    """
    with open_session(settings) as session:
        return RescheduleWorkflow(session, settings, current_date, notify).run()


def run_check_once(
    settings: Settings,
    state: OrchestratorState,
    notifier: Notifier,
    monitor: Optional[HealthMonitor] = None,
) -> CycleResult:
    if monitor is None:
        monitor = build_monitor(settings, state, notifier)

    try:
        result = run_cycle(settings, state.current_date, notifier.send)
    except Exception as e:
        logger.error("Cycle failed (%s)", _short_exc(e))
        result = Failed(e)

    if isinstance(result, Rescheduled):
        logger.info("Set new date as %s", result.new_date.isoformat())
        state.current_date = result.new_date
        notifier.send(f"Successfully scheduled a new appointment on {result.new_date.isoformat()}")
    elif isinstance(result, Aborted):
        logger.info("Cycle aborted: %s", result.reason)
    elif isinstance(result, NoBetterDate):
        logger.info("No better date, keeping %s", state.current_date.isoformat())

    monitor.record(result)
    return result


def run_forever(settings: Settings, state: OrchestratorState, notifier: Notifier) -> None:
    logger.info("Worker started. Interval=%ss", settings.check_interval_seconds)
    monitor = build_monitor(settings, state, notifier)
    while True:
        run_check_once(settings, state, notifier, monitor)
        time.sleep(settings.check_interval_seconds)
