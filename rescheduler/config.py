from __future__ import annotations

import datetime as dt
import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

from rescheduler.domain import AcceptanceWindow, DateRange


def _parse_telegram_chat_ids(raw: str) -> tuple[str, ...]:
    # TELEGRAM_CHAT_ID supports a single value or a comma-separated list.
    # Examples:
    #   TELEGRAM_CHAT_ID=123456789
    #   TELEGRAM_CHAT_ID=123456789,-1001234567890
    parts = [p.strip() for p in raw.split(",")]
    parts = [p for p in parts if p]

    seen: set[str] = set()
    result: list[str] = []
    for p in parts:
        # Telegram allows numeric IDs; groups/supergroups can be negative.
        try:
            int(p)
        except ValueError as e:
            raise RuntimeError(f"Invalid TELEGRAM_CHAT_ID value: {p!r}. Expected integer chat id.") from e

        if p == "0":
            raise RuntimeError("Invalid TELEGRAM_CHAT_ID value: '0' is not a valid chat id")

        if p in seen:
            continue
        seen.add(p)
        result.append(p)

    if not result:
        raise RuntimeError("TELEGRAM_CHAT_ID is empty. Provide at least one chat id.")

    return tuple(result)


def _parse_date(name: str, raw: str) -> dt.date:
    try:
        return dt.date.fromisoformat(raw.strip())
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected YYYY-MM-DD.") from e


def _parse_excluded_ranges(raw: str) -> AcceptanceWindow:
    # EXCLUDED_DATE_RANGES=2024-03-01..2024-06-01;2024-08-21..2024-09-22
    ranges: list[DateRange] = []
    for part in re.split(r"[;,]", raw):
        part = part.strip()
        if not part:
            continue
        start_raw, sep, end_raw = part.partition("..")
        if not sep:
            raise RuntimeError(f"Invalid EXCLUDED_DATE_RANGES entry: {part!r}. Expected START..END.")
        start = _parse_date("EXCLUDED_DATE_RANGES", start_raw)
        end = _parse_date("EXCLUDED_DATE_RANGES", end_raw)
        if end < start:
            raise RuntimeError(f"Invalid EXCLUDED_DATE_RANGES entry: {part!r}. End is before start.")
        ranges.append(DateRange(start=start, end=end))
    return AcceptanceWindow(excluded=tuple(ranges))


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


def _positive_int(name: str, default: str) -> int:
    value = int(os.getenv(name, default))
    if value < 1:
        raise RuntimeError(f"{name} must be >= 1")
    return value


@dataclass(frozen=True)
class Settings:
    visa_username: str
    visa_password: str
    country_code: str
    schedule_id: str
    facility_id: int

    # The appointment date currently held; only earlier dates are pursued.
    current_date: dt.date
    acceptance_window: AcceptanceWindow = AcceptanceWindow()
    group_appointment: bool = False

    telegram_bot_token: str | None = None
    telegram_chat_ids: tuple[str, ...] = ()
    pushover_app_token: str | None = None
    pushover_user_key: str | None = None

    check_interval_seconds: int = 300
    headless: bool = True
    no_sandbox: bool = False

    # Browser tuning
    element_timeout_seconds: float = 5.0
    navigation_timeout_seconds: float = 60.0
    # One attempt per datepicker page; 24 pages cover two years of calendar.
    date_picker_max_attempts: int = 24

    # How long failures may last before the operator is paged.
    outage_notify_minutes: int = 60


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    telegram_bot_token = _optional("TELEGRAM_BOT_TOKEN")
    telegram_chat_raw = _optional("TELEGRAM_CHAT_ID")
    if bool(telegram_bot_token) != bool(telegram_chat_raw):
        raise RuntimeError("TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be set together")
    telegram_chat_ids = _parse_telegram_chat_ids(telegram_chat_raw) if telegram_chat_raw else ()

    pushover_app_token = _optional("PUSHOVER_APP_TOKEN")
    pushover_user_key = _optional("PUSHOVER_USER_KEY")
    if bool(pushover_app_token) != bool(pushover_user_key):
        raise RuntimeError("PUSHOVER_APP_TOKEN and PUSHOVER_USER_KEY must be set together")

    element_timeout_seconds = float(os.getenv("ELEMENT_TIMEOUT_SECONDS", "5"))
    navigation_timeout_seconds = float(os.getenv("NAVIGATION_TIMEOUT_SECONDS", "60"))
    if element_timeout_seconds <= 0 or navigation_timeout_seconds <= 0:
        raise RuntimeError("ELEMENT_TIMEOUT_SECONDS and NAVIGATION_TIMEOUT_SECONDS must be > 0")

    return Settings(
        visa_username=_require("VISA_USERNAME"),
        visa_password=_require("VISA_PASSWORD"),
        country_code=_require("COUNTRY_CODE"),
        schedule_id=_require("SCHEDULE_ID"),
        facility_id=int(_require("APPOINTMENTS_CONSULATE_APPOINTMENT_FACILITY_ID")),
        current_date=_parse_date("CURRENT_APPOINTMENT_DATE", _require("CURRENT_APPOINTMENT_DATE")),
        acceptance_window=_parse_excluded_ranges(os.getenv("EXCLUDED_DATE_RANGES", "")),
        group_appointment=_flag("GROUP_APPOINTMENT", "0"),
        telegram_bot_token=telegram_bot_token,
        telegram_chat_ids=telegram_chat_ids,
        pushover_app_token=pushover_app_token,
        pushover_user_key=pushover_user_key,
        check_interval_seconds=_positive_int("CHECK_INTERVAL_SECONDS", "300"),
        headless=_flag("HEADLESS", "1"),
        no_sandbox=_flag("NO_SANDBOX", "0"),
        element_timeout_seconds=element_timeout_seconds,
        navigation_timeout_seconds=navigation_timeout_seconds,
        date_picker_max_attempts=_positive_int("DATE_PICKER_MAX_ATTEMPTS", "24"),
        outage_notify_minutes=_positive_int("OUTAGE_NOTIFY_MINUTES", "60"),
    )
