from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Callable

from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from rescheduler import selectors
from rescheduler.browser import build_appointments_url, build_days_url, build_sign_in_url
from rescheduler.config import Settings
from rescheduler.domain import (
    Aborted,
    Better,
    CycleResult,
    DateCheck,
    DateNoLongerAvailable,
    DatePickerExhausted,
    NoBetterDate,
    Rescheduled,
    UnexpectedPageState,
    WaitTimeout,
)
from rescheduler.interaction import click, scroll_into_view_if_needed, set_value, wait_for
from rescheduler.locator import resolve, try_resolve
from rescheduler.scanner import scan

logger = logging.getLogger(__name__)

# The day cell either is on the current datepicker page or it is not.
DAY_CELL_TIMEOUT_SECONDS = 0.1

_TIME_OPTIONS_JS = "return Array.from(arguments[0].options).map(o => o.value).filter(v => v);"


class _DayNotOnPage(Exception):
    pass


def _log_page_advance(retry_state: RetryCallState) -> None:
    logger.info("Target day not on datepicker page %s, moved to the next page", retry_state.attempt_number)


class RescheduleWorkflow:
    """One pass over the site: sign in, look for an earlier date, take it.

    Steps run strictly in order. Any step failure propagates to the caller;
    the only outcomes returned are the normal ones (rescheduled, nothing
    better, aborted on a lost race).
    """

    def __init__(self, session, settings: Settings, current_date: dt.date, notify: Callable[[str], None]):
        self.session = session
        self.settings = settings
        self.current_date = current_date
        self.notify = notify
        self.timeout = settings.element_timeout_seconds

    def _find(self, chain: selectors.SelectorChain):
        handle = resolve(self.session, chain, timeout=self.timeout)
        scroll_into_view_if_needed(self.session, handle, self.timeout)
        return handle

    def _click(self, chain: selectors.SelectorChain) -> None:
        click(self.session, resolve(self.session, chain, timeout=self.timeout), self.timeout)

    def run(self) -> CycleResult:
        self.authenticate()
        self.open_appointment_page()

        scan_result = self.fetch_availability()
        if not isinstance(scan_result, Better):
            return NoBetterDate()
        candidate = scan_result.candidate

        self.open_schedule_form()
        self.select_group_if_applicable()
        self.select_facility()
        self.open_date_picker()

        try:
            self.advance_to_target_date(candidate)
        except DatePickerExhausted as e:
            logger.warning("Cancelled date picking after %s pages", self.settings.date_picker_max_attempts)
            return Aborted(e.reason)

        if self.verify_picked_date(candidate) is DateCheck.MISMATCH:
            return Aborted(DateNoLongerAvailable.reason)

        try:
            self.select_earliest_time(candidate)
        except DateNoLongerAvailable as e:
            self.notify(f"Sorry, the date {candidate.isoformat()} has no free time left. Someone moved a bit faster.")
            return Aborted(e.reason)

        self.submit_reschedule()
        self.confirm_submission()
        return Rescheduled(candidate)

    def authenticate(self) -> None:
        sign_in_url = build_sign_in_url(self.settings.country_code)
        logger.info("Logging in: %s", sign_in_url)
        self.session.navigate(sign_in_url)

        email = self._find(selectors.EMAIL_INPUT)
        self.session.click(email)
        set_value(self.session, email, self.settings.visa_username)

        # Tab out of the email field so its validator runs.
        self.session.press_key("Tab")

        password = self._find(selectors.PASSWORD_INPUT)
        set_value(self.session, password, self.settings.visa_password)

        logger.info("Accepting the privacy policy and submitting the sign in form")
        self._click(selectors.POLICY_CHECKBOX)
        self._click(selectors.SIGN_IN_BUTTON)

        try:
            wait_for(
                lambda: self.session.current_url != sign_in_url,
                timeout=self.settings.navigation_timeout_seconds,
                what="sign in to complete",
            )
        except WaitTimeout as e:
            raise UnexpectedPageState("Still on the sign in page after submitting credentials") from e

    def open_appointment_page(self) -> None:
        url = build_appointments_url(self.settings.country_code, self.settings.schedule_id)
        logger.info("Opening appointment page: %s", url)
        self.session.navigate(url)
        if "/users/sign_in" in self.session.current_url:
            raise UnexpectedPageState(f"Redirected to sign in while opening {url}")

    def fetch_availability(self):
        url = build_days_url(self.settings.country_code, self.settings.schedule_id, self.settings.facility_id)
        logger.info("Checking available dates: %s", url)
        return scan(self.session, url, self.settings.acceptance_window, self.current_date)

    def open_schedule_form(self) -> None:
        logger.info("Waiting for the schedule form")
        resolve(self.session, selectors.SCHEDULE_FORM, timeout=self.timeout)
        time.sleep(1)

    def select_group_if_applicable(self) -> None:
        if not self.settings.group_appointment:
            return
        logger.info("Selecting every applicant of the group appointment")
        self._click(selectors.GROUP_CONTINUE_BUTTON)
        time.sleep(1)

    def select_facility(self) -> None:
        logger.info("Selecting consular facility %s", self.settings.facility_id)
        facility = self._find(selectors.FACILITY_SELECT)
        self.session.select(facility, str(self.settings.facility_id))
        time.sleep(1)

    def open_date_picker(self) -> None:
        logger.info("Opening the date picker")
        self._click(selectors.DATE_INPUT)
        time.sleep(1)

    def advance_to_target_date(self, candidate: dt.date) -> None:
        """Page the datepicker forward until the candidate's day can be clicked.

        Raises DatePickerExhausted once every allowed page has been tried.
        """
        logger.info("Looking for %s in the date picker", candidate.isoformat())
        day_cell = selectors.day_cell(candidate)
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.date_picker_max_attempts),
            retry=retry_if_exception_type(_DayNotOnPage),
            before_sleep=_log_page_advance,
        )
        try:
            for attempt in retrying:
                with attempt:
                    cell = try_resolve(self.session, day_cell, timeout=DAY_CELL_TIMEOUT_SECONDS)
                    if cell is None:
                        self._click(selectors.DATEPICKER_NEXT)
                        raise _DayNotOnPage(candidate.isoformat())
                    click(self.session, cell, self.timeout)
        except RetryError as e:
            raise DatePickerExhausted(f"{candidate.isoformat()} not found in the date picker") from e
        time.sleep(0.5)

    def verify_picked_date(self, candidate: dt.date) -> DateCheck:
        date_input = resolve(self.session, selectors.DATE_INPUT, timeout=self.timeout)
        picked = str(self.session.read_property(date_input, "value") or "").strip()
        if picked == candidate.isoformat():
            logger.info("Picked date verified: %s", picked)
            return DateCheck.VERIFIED

        self.notify(
            f"Sorry, the date {candidate.isoformat()} is no longer available, "
            f"the date in the textbox is {picked or 'empty'}. Someone moved a bit faster."
        )
        return DateCheck.MISMATCH

    def select_earliest_time(self, candidate: dt.date) -> None:
        time_select = self._find(selectors.TIME_SELECT)
        options = self.session.evaluate(_TIME_OPTIONS_JS, time_select) or []
        if not options:
            raise DateNoLongerAvailable(f"No appointment times left on {candidate.isoformat()}")
        logger.info("Selecting the earliest time: %s", options[0])
        self.session.select(time_select, options[0])
        time.sleep(1)

    def submit_reschedule(self) -> None:
        logger.info("Clicking the reschedule button")
        self._click(selectors.RESCHEDULE_BUTTON)
        time.sleep(1)

    def confirm_submission(self) -> None:
        logger.info("Confirming the reschedule")
        self._click(selectors.CONFIRM_BUTTON)
        time.sleep(5)
