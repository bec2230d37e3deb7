"""Resilient element lookup.

Alternatives in a chain are tried in order, each with the full timeout.
Within an alternative, every segment but the last is a host: the next
segment is looked up inside its shadow root, or inside the host itself
when it has none. Visibility, when required, applies to every segment.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from rescheduler.domain import ElementNotFound, WaitTimeout
from rescheduler.interaction import wait_for
from rescheduler.selectors import Descriptor, SelectorChain, SelectorPath, describe

logger = logging.getLogger(__name__)


def _first_match(session, descriptor: Descriptor, scope: Any, must_be_visible: bool):
    for handle in session.find_all(descriptor, scope):
        if not must_be_visible or session.is_displayed(handle):
            return handle
    return None


def _resolve_path(session, path: SelectorPath, scope: Any, timeout: float, must_be_visible: bool):
    handle = None
    for i, descriptor in enumerate(path):
        last = i == len(path) - 1
        handle = wait_for(
            lambda: _first_match(session, descriptor, scope, must_be_visible),
            timeout=timeout,
            what=str(descriptor),
        )
        if not last:
            nested = session.nested_root(handle)
            scope = nested if nested is not None else handle
    return handle


def try_resolve(
    session,
    selectors: SelectorChain,
    *,
    scope: Any = None,
    timeout: float,
    must_be_visible: bool = True,
) -> Optional[Any]:
    """Like resolve(), but a miss is a None result rather than an error."""
    for path in selectors:
        try:
            return _resolve_path(session, path, scope, timeout, must_be_visible)
        except WaitTimeout:
            logger.debug("Selector alternative missed: %s", " >> ".join(str(d) for d in path))
    return None


def resolve(
    session,
    selectors: SelectorChain,
    *,
    scope: Any = None,
    timeout: float,
    must_be_visible: bool = True,
) -> Any:
    handle = try_resolve(session, selectors, scope=scope, timeout=timeout, must_be_visible=must_be_visible)
    if handle is None:
        raise ElementNotFound(f"Could not find element for selectors: {describe(selectors)}")
    return handle
