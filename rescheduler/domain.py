from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True, order=True)
class Slot:
    """A single available appointment date, as listed by the days endpoint."""

    date: dt.date


@dataclass(frozen=True)
class DateRange:
    """Excluded interval, inclusive on both ends."""

    start: dt.date
    end: dt.date

    def __contains__(self, day: dt.date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class AcceptanceWindow:
    excluded: tuple[DateRange, ...] = ()

    def rejects(self, day: dt.date) -> bool:
        return any(day in r for r in self.excluded)


# Scan outcomes


@dataclass(frozen=True)
class NoSlots:
    pass


@dataclass(frozen=True)
class NotBetter:
    candidate: dt.date


@dataclass(frozen=True)
class Excluded:
    candidate: dt.date


@dataclass(frozen=True)
class Better:
    candidate: dt.date


ScanResult = Union[NoSlots, NotBetter, Excluded, Better]


# Cycle outcomes


@dataclass(frozen=True)
class Rescheduled:
    new_date: dt.date


@dataclass(frozen=True)
class NoBetterDate:
    pass


@dataclass(frozen=True)
class Aborted:
    reason: str


@dataclass(frozen=True)
class Failed:
    error: BaseException


CycleResult = Union[Rescheduled, NoBetterDate, Aborted, Failed]


class DateCheck(enum.Enum):
    VERIFIED = "verified"
    MISMATCH = "mismatch"


@dataclass
class HealthState:
    # The process starts as "not yet known to work": the first healthy
    # cycle is reported like a recovery.
    is_working: bool = False
    down_since: Optional[dt.datetime] = None
    down_notified: bool = False


@dataclass
class OrchestratorState:
    current_date: dt.date
    health: HealthState = field(default_factory=HealthState)


class BotError(RuntimeError):
    """Base class for every failure raised by the rescheduler itself."""


class ElementNotFound(BotError):
    pass


class WaitTimeout(BotError, TimeoutError):
    pass


class TransportError(BotError):
    """The availability endpoint could not be read."""


class UnexpectedPageState(BotError):
    pass


class DatePickerExhausted(BotError):
    reason = "date picker exhausted"


class DateNoLongerAvailable(BotError):
    reason = "date no longer available"
