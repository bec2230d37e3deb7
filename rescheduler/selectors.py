"""Element descriptors and the selector chains for every page the bot visits.

A chain is an ordered tuple of alternatives; each alternative is a path of
descriptors. Every segment of a path but the last one resolves to a host
element whose nested (shadow) root scopes the next segment.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Union

from selenium.webdriver.common.by import By

Locator = tuple[str, str]

# Roles of native elements, so that role hints match plain HTML controls too.
_IMPLICIT_ROLES = {
    "link": ("a",),
    "button": ("button", "input"),
    "combobox": ("select",),
    "textbox": ("input", "textarea"),
    "checkbox": ("input",),
}

_BUTTON_INPUT = "(@type='submit' or @type='button' or @type='reset')"


def _xpath_literal(text: str) -> str:
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


@dataclass(frozen=True)
class Css:
    selector: str

    def locator(self) -> Locator:
        return (By.CSS_SELECTOR, self.selector)

    def __str__(self) -> str:
        return self.selector


@dataclass(frozen=True)
class Aria:
    """Accessible-name hint for a control.

    The name comes from aria-label, from a <label for=...>, from the value
    of a button-like input, or from the text of links, buttons and elements
    with an explicit role. Labels and plain text containers never match.
    """

    name: Optional[str] = None
    role: Optional[str] = None

    def locator(self) -> Locator:
        conditions = []
        if self.name is not None:
            lit = _xpath_literal(self.name)
            conditions.append(
                f"(@aria-label={lit}"
                f" or @id=//label[normalize-space(.)={lit}]/@for"
                f" or (self::input and {_BUTTON_INPUT} and @value={lit})"
                f" or ((self::a or self::button or @role) and normalize-space(.)={lit}))"
            )
            conditions.append("not(self::label)")
        if self.role is not None:
            role = _xpath_literal(self.role)
            tags = " or ".join(f"self::{t}" for t in _IMPLICIT_ROLES.get(self.role, ()))
            conditions.append(f"(@role={role} or {tags})" if tags else f"@role={role}")
        if not conditions:
            raise ValueError("Aria descriptor needs a name or a role")
        return (By.XPATH, "//*[" + " and ".join(conditions) + "]")

    def __str__(self) -> str:
        role = f"[role={self.role}]" if self.role else ""
        return f"aria/{self.name or ''}{role}"


Descriptor = Union[Css, Aria]
SelectorPath = tuple[Descriptor, ...]
SelectorChain = tuple[SelectorPath, ...]


def chain(*alternatives: Union[Descriptor, SelectorPath]) -> SelectorChain:
    """Build a chain; a bare descriptor is a one-segment path."""
    if not alternatives:
        raise ValueError("empty selector chain")
    return tuple(a if isinstance(a, tuple) else (a,) for a in alternatives)


def describe(selectors: SelectorChain) -> str:
    return " | ".join(" >> ".join(str(d) for d in path) for path in selectors)


# Sign in page
EMAIL_INPUT = chain(Css("#user_email"), Aria("Email *"))
PASSWORD_INPUT = chain(Css("#user_password"), Aria("Password"))
POLICY_CHECKBOX = chain(
    Css("#sign_in_form > div.radio-checkbox-group.margin-top-30 > label > div"),
    Css("#sign_in_form div.radio-checkbox-group label > div"),
)
SIGN_IN_BUTTON = chain(Css('[name="commit"]'), Css("#new_user > p:nth-child(9) > input"))

# Appointment page
SCHEDULE_FORM = chain(Css("#main > div.mainContent > form"), Css("#main form"))
GROUP_CONTINUE_BUTTON = chain(
    Aria("Continue"),
    Css("#main > div.mainContent > form > div:nth-child(3) > div > input"),
)
FACILITY_SELECT = chain(
    Css("#appointments_consulate_appointment_facility_id"),
    Aria("Consular Section Appointment", role="combobox"),
)
DATE_INPUT = chain(Css("#appointments_consulate_appointment_date"), Aria("Date of Appointment *"))
DATEPICKER_NEXT = chain(
    Css("#ui-datepicker-div > div.ui-datepicker-group.ui-datepicker-group-last > div > a > span"),
    Css("#ui-datepicker-div a.ui-datepicker-next"),
    Aria("Next"),
)
TIME_SELECT = chain(Css("#appointments_consulate_appointment_time"))
RESCHEDULE_BUTTON = chain(Aria("Reschedule"), Css("#appointments_submit"))
CONFIRM_BUTTON = chain(
    Css("body > div.reveal-overlay > div > div > a.button.alert"),
    Aria("Confirm", role="link"),
)


def day_cell(day: dt.date) -> SelectorChain:
    """Clickable datepicker cell for ``day``.

    jQuery UI marks selectable cells with data-handler="selectDay" and a
    zero-based data-month; unselectable days carry no link at all.
    """
    month_cell = (
        f'#ui-datepicker-div td[data-handler="selectDay"]'
        f'[data-month="{day.month - 1}"][data-year="{day.year}"]'
    )
    return chain(
        Css(f'{month_cell} > a[data-date="{day.day}"]'),
        Aria(str(day.day), role="link"),
    )
