from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from rescheduler.domain import WaitTimeout

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.1

# Input kinds that accept typed text; typing fires the site's validators.
TEXT_ENTRY_KINDS = frozenset(
    {"textarea", "select-one", "text", "url", "tel", "search", "password", "number", "email"}
)

_SCROLL_TO_CENTER_JS = "arguments[0].scrollIntoView({block: 'center', inline: 'center', behavior: 'auto'});"

_SET_VALUE_JS = """
const el = arguments[0];
el.value = arguments[1];
el.dispatchEvent(new Event('input', {bubbles: true}));
el.dispatchEvent(new Event('change', {bubbles: true}));
"""


def wait_for(
    predicate: Callable[[], Any],
    *,
    timeout: float,
    interval: float = POLL_INTERVAL_SECONDS,
    what: str = "condition",
) -> Any:
    """Poll ``predicate`` until it returns something truthy; return that value.

    The predicate runs at least once, even with a zero timeout.
    """
    deadline = time.monotonic() + timeout
    while True:
        result = predicate()
        if result:
            return result
        if time.monotonic() >= deadline:
            raise WaitTimeout(f"Timed out after {timeout:.1f}s waiting for {what}")
        time.sleep(interval)


def wait_for_connected(session, handle, timeout: float) -> None:
    wait_for(lambda: session.read_property(handle, "isConnected"), timeout=timeout, what="element to attach")


def wait_for_in_viewport(session, handle, timeout: float) -> None:
    wait_for(lambda: session.is_intersecting_viewport(handle), timeout=timeout, what="element to enter viewport")


def scroll_into_view_if_needed(session, handle, timeout: float) -> None:
    wait_for_connected(session, handle, timeout)
    if session.is_intersecting_viewport(handle):
        return
    session.evaluate(_SCROLL_TO_CENTER_JS, handle)
    wait_for_in_viewport(session, handle, timeout)


def set_value(session, handle, value: str) -> None:
    kind = session.read_property(handle, "type")
    if kind in TEXT_ENTRY_KINDS:
        session.type_text(handle, value)
        return
    # Widgets that ignore key events only notice a value change through events.
    session.focus(handle)
    session.evaluate(_SET_VALUE_JS, handle, value)


def click(session, handle, timeout: float, offset: Optional[tuple[float, float]] = None) -> None:
    scroll_into_view_if_needed(session, handle, timeout)
    session.click(handle, offset)
