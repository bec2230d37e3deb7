from __future__ import annotations

import logging

import httpx

from rescheduler.config import Settings

logger = logging.getLogger(__name__)

PUSHOVER_URL = "https://api.pushover.net/1/messages.json"


def send_telegram_message(*, bot_token: str, chat_id: str, text: str, timeout_seconds: float = 20.0) -> None:
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }

    with httpx.Client(timeout=timeout_seconds) as client:
        r = client.post(url, json=payload)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok", False):
            raise RuntimeError(f"Telegram API error: {data}")


def send_pushover_message(*, app_token: str, user_key: str, text: str, timeout_seconds: float = 20.0) -> None:
    payload = {
        "token": app_token,
        "user": user_key,
        "message": text,
    }

    with httpx.Client(timeout=timeout_seconds) as client:
        r = client.post(PUSHOVER_URL, json=payload)
        r.raise_for_status()
        data = r.json()
        if data.get("status") != 1:
            raise RuntimeError(f"Pushover API error: {data}")


class Notifier:
    """Best-effort fan-out to every configured transport.

    A message is always logged; delivery failures are logged and dropped.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, text: str) -> None:
        logger.info("Notify: %s", text)

        for chat_id in self.settings.telegram_chat_ids:
            try:
                send_telegram_message(
                    bot_token=self.settings.telegram_bot_token,
                    chat_id=chat_id,
                    text=text,
                )
            except Exception as e:
                # Don't stop sending to other chat_ids.
                logger.warning("Failed to send telegram message to chat_id=%s (%s: %s)", chat_id, type(e).__name__, e)

        if self.settings.pushover_app_token and self.settings.pushover_user_key:
            try:
                send_pushover_message(
                    app_token=self.settings.pushover_app_token,
                    user_key=self.settings.pushover_user_key,
                    text=text,
                )
            except Exception as e:
                logger.warning("Failed to send pushover message (%s: %s)", type(e).__name__, e)
