from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Sequence

from rescheduler.domain import (
    AcceptanceWindow,
    Better,
    Excluded,
    NoSlots,
    NotBetter,
    ScanResult,
    Slot,
    TransportError,
)

logger = logging.getLogger(__name__)

# Runs inside the signed-in page so that the session cookie goes along.
# Same headers as the site's own calendar XHR.
_FETCH_JSON_JS = """
const done = arguments[arguments.length - 1];
fetch(arguments[0], {
  credentials: 'same-origin',
  headers: {
    'Accept': 'application/json, text/javascript, */*; q=0.01',
    'X-Requested-With': 'XMLHttpRequest',
  },
})
  .then(r => r.text().then(body => done({status: r.status, body: body})))
  .catch(e => done({status: 0, body: String(e)}));
"""


def fetch_slots(session, url: str) -> list[Slot]:
    try:
        response = session.evaluate_async(_FETCH_JSON_JS, url)
    except Exception as e:
        raise TransportError(f"Availability request failed ({type(e).__name__}: {e})") from e

    status = int((response or {}).get("status", 0))
    body = (response or {}).get("body", "")
    if not 200 <= status < 300:
        raise TransportError(f"Availability request returned HTTP {status}: {body[:200]!r}")

    try:
        raw = json.loads(body)
    except json.JSONDecodeError as e:
        raise TransportError(f"Availability response is not JSON: {body[:200]!r}") from e

    return parse_slots(raw)


def parse_slots(raw: Any) -> list[Slot]:
    if not isinstance(raw, list):
        raise TransportError(f"Availability response is not a list: {type(raw).__name__}")
    slots: list[Slot] = []
    for item in raw:
        try:
            slots.append(Slot(date=dt.date.fromisoformat(str(item["date"]))))
        except (TypeError, KeyError, ValueError) as e:
            raise TransportError(f"Malformed availability entry: {item!r}") from e
    return slots


def evaluate_slots(slots: Sequence[Slot], window: AcceptanceWindow, current_date: dt.date) -> ScanResult:
    """Decide whether the listing holds a date worth taking.

    Only the first slot is considered: the endpoint lists dates in
    ascending order.
    """
    if not slots:
        return NoSlots()

    candidate = slots[0].date
    if candidate >= current_date:
        return NotBetter(candidate)
    if window.rejects(candidate):
        return Excluded(candidate)
    return Better(candidate)


def scan(session, url: str, window: AcceptanceWindow, current_date: dt.date) -> ScanResult:
    slots = fetch_slots(session, url)
    result = evaluate_slots(slots, window, current_date)

    if isinstance(result, NoSlots):
        logger.info("There are no available dates")
    elif isinstance(result, NotBetter):
        logger.info(
            "There is not an earlier date available than %s, first available date is %s",
            current_date.isoformat(),
            result.candidate.isoformat(),
        )
    elif isinstance(result, Excluded):
        logger.info("Earlier date %s falls inside an excluded range, skipping", result.candidate.isoformat())
    else:
        logger.info("Found an earlier date: %s", result.candidate.isoformat())
    return result
