from __future__ import annotations

import datetime as dt

import lxml.html
import pytest
from selenium.webdriver.common.by import By

from rescheduler import selectors
from rescheduler.selectors import Aria, Css, _xpath_literal, chain, day_cell, describe


def test_chain_wraps_bare_descriptors_into_paths() -> None:
    path = (Css("my-widget"), Css("input"))
    assert chain(Css("#a"), path) == ((Css("#a"),), path)


def test_chain_must_not_be_empty() -> None:
    with pytest.raises(ValueError):
        chain()


def test_describe_joins_alternatives_and_segments() -> None:
    assert describe(chain(Aria("Email *"), (Css("x-host"), Css("input")))) == "aria/Email * | x-host >> input"


def test_css_locator() -> None:
    assert Css("#user_email").locator() == (By.CSS_SELECTOR, "#user_email")


def test_aria_name_matches_label_text_and_attributes() -> None:
    by, xpath = Aria("Email *").locator()

    assert by == By.XPATH
    assert "@aria-label='Email *'" in xpath
    assert "//label[normalize-space(.)='Email *']/@for" in xpath


def test_aria_role_also_matches_native_elements() -> None:
    _, xpath = Aria("10", role="link").locator()
    assert "@role='link' or self::a" in xpath


def test_aria_needs_name_or_role() -> None:
    with pytest.raises(ValueError):
        Aria().locator()


@pytest.mark.parametrize(
    "text, literal",
    [
        ("Next", "'Next'"),
        ("Don't", '"Don\'t"'),
        ("a'b\"c", "concat('a', \"'\", 'b\"c')"),
    ],
)
def test_xpath_literal_quoting(text: str, literal: str) -> None:
    assert _xpath_literal(text) == literal


def test_day_cell_targets_zero_based_month() -> None:
    cells = day_cell(dt.date(2024, 5, 10))

    assert cells[0][0] == Css(
        '#ui-datepicker-div td[data-handler="selectDay"][data-month="4"][data-year="2024"] > a[data-date="10"]'
    )
    assert cells[1][0] == Aria("10", role="link")


# Trimmed markup of the sign in, appointment and datepicker pages.
_PAGE = """
<html><body>
<h2>Reschedule</h2>
<form id="sign_in_form">
  <label for="user_email">Email <abbr title="required">*</abbr></label>
  <input type="email" id="user_email" name="user[email]">
  <label for="user_password">Password</label>
  <input type="password" id="user_password" name="user[password]">
  <a id="forgot" href="#">Forgot your password?</a>
</form>
<form id="schedule">
  <input type="submit" id="group_continue" value="Continue">
  <label for="appointments_consulate_appointment_facility_id">Consular Section Appointment</label>
  <select id="appointments_consulate_appointment_facility_id"><option value="94">Toronto</option></select>
  <label for="appointments_consulate_appointment_date">Date of Appointment <abbr>*</abbr></label>
  <input type="text" id="appointments_consulate_appointment_date" readonly>
  <input type="submit" name="commit" id="appointments_submit" value="Reschedule">
</form>
<div id="ui-datepicker-div">
  <a id="next" class="ui-datepicker-next" data-handler="next" title="Next"><span>Next</span></a>
  <table><tr>
    <td data-handler="selectDay" data-month="4" data-year="2024"><a id="day" href="#" data-date="10">10</a></td>
  </tr></table>
</div>
<div class="reveal-overlay"><div><div>
  <h3>Confirm</h3>
  <a id="confirm" class="button alert" href="#">Confirm</a>
</div></div></div>
</body></html>
"""


def _aria_alternatives(selector_chain):
    return [d for path in selector_chain for d in path if isinstance(d, Aria)]


@pytest.mark.parametrize(
    "selector_chain, expected_id",
    [
        (selectors.EMAIL_INPUT, "user_email"),
        (selectors.PASSWORD_INPUT, "user_password"),
        (selectors.GROUP_CONTINUE_BUTTON, "group_continue"),
        (selectors.FACILITY_SELECT, "appointments_consulate_appointment_facility_id"),
        (selectors.DATE_INPUT, "appointments_consulate_appointment_date"),
        (selectors.DATEPICKER_NEXT, "next"),
        (selectors.RESCHEDULE_BUTTON, "appointments_submit"),
        (selectors.CONFIRM_BUTTON, "confirm"),
        (day_cell(dt.date(2024, 5, 10)), "day"),
    ],
)
def test_aria_alternatives_match_the_control_not_its_label(selector_chain, expected_id: str) -> None:
    document = lxml.html.document_fromstring(_PAGE)
    alternatives = _aria_alternatives(selector_chain)
    assert alternatives

    for descriptor in alternatives:
        by, xpath = descriptor.locator()
        assert by == By.XPATH
        matches = document.xpath(xpath)
        assert matches, f"{descriptor} matched nothing"
        assert matches[0].get("id") == expected_id, f"{descriptor} matched <{matches[0].tag}>"


def test_sign_in_inputs_are_looked_up_by_id_first() -> None:
    assert selectors.EMAIL_INPUT[0] == (Css("#user_email"),)
    assert selectors.PASSWORD_INPUT[0] == (Css("#user_password"),)
    assert selectors.DATE_INPUT[0] == (Css("#appointments_consulate_appointment_date"),)
