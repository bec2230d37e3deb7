from __future__ import annotations

from unittest.mock import patch

import httpx

from rescheduler.notifier import Notifier
from rescheduler.tests.fakes import make_settings


def test_send_fans_out_to_every_chat_and_pushover() -> None:
    settings = make_settings(pushover_app_token="app", pushover_user_key="user")

    with (
        patch("rescheduler.notifier.send_telegram_message") as telegram,
        patch("rescheduler.notifier.send_pushover_message") as pushover,
    ):
        Notifier(settings).send("hello")

    assert [c.kwargs["chat_id"] for c in telegram.call_args_list] == ["1", "2"]
    pushover.assert_called_once_with(app_token="app", user_key="user", text="hello")


def test_send_without_transports_only_logs() -> None:
    settings = make_settings(telegram_bot_token=None, telegram_chat_ids=())

    with (
        patch("rescheduler.notifier.send_telegram_message") as telegram,
        patch("rescheduler.notifier.send_pushover_message") as pushover,
    ):
        Notifier(settings).send("hello")

    telegram.assert_not_called()
    pushover.assert_not_called()


def test_delivery_failures_are_swallowed() -> None:
    settings = make_settings(pushover_app_token="app", pushover_user_key="user")

    with (
        patch("rescheduler.notifier.send_telegram_message", side_effect=httpx.ConnectError("down")) as telegram,
        patch("rescheduler.notifier.send_pushover_message", side_effect=RuntimeError("Pushover API error")) as pushover,
    ):
        Notifier(settings).send("hello")  # should not raise

    # A failing chat does not stop delivery to the next one.
    assert telegram.call_count == 2
    pushover.assert_called_once()
