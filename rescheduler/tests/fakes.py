"""In-memory stand-ins for the browser session, so tests never start Chrome."""

from __future__ import annotations

import datetime as dt
from dataclasses import replace
from typing import Any, Callable, Optional

from rescheduler.config import Settings


def make_settings(**overrides: Any) -> Settings:
    # No real credentials or ids here; nothing in the tests may reach the network.
    settings = Settings(
        visa_username="user@example.com",
        visa_password="p",
        country_code="en-ca",
        schedule_id="71716653",
        facility_id=94,
        current_date=dt.date(2024, 6, 1),
        telegram_bot_token="TEST_TOKEN",
        telegram_chat_ids=("1", "2"),
        check_interval_seconds=1,
        element_timeout_seconds=0.05,
        navigation_timeout_seconds=0.05,
    )
    return replace(settings, **overrides)


class FakeRoot:
    def __init__(self) -> None:
        self.children: dict[Any, list[FakeElement]] = {}

    def add(self, descriptor: Any, element: "FakeElement") -> "FakeElement":
        self.children.setdefault(descriptor, []).append(element)
        return element


class FakeElement(FakeRoot):
    def __init__(
        self,
        name: str = "element",
        *,
        visible: bool = True,
        connected: bool = True,
        in_viewport: bool = True,
        scrollable: bool = True,
        shadow_root: Optional[FakeRoot] = None,
        on_click: Optional[Callable[[], None]] = None,
        **props: Any,
    ) -> None:
        super().__init__()
        self.name = name
        self.visible = visible
        self.in_viewport = in_viewport
        self.scrollable = scrollable
        self.shadow_root = shadow_root
        self.on_click = on_click
        self.focused = False
        self.props: dict[str, Any] = {"isConnected": connected, **props}

    def __repr__(self) -> str:
        return f"FakeElement({self.name!r})"


class FakeSession(FakeRoot):
    """Mirrors rescheduler.browser.BrowserSession; the document is the root."""

    def __init__(self) -> None:
        super().__init__()
        self.current_url = "about:blank"
        self.visited: list[str] = []
        self.clicked: list[str] = []
        self.typed: list[tuple[str, str]] = []
        self.selected: list[tuple[str, str]] = []
        self.keys: list[str] = []
        self.scripts: list[str] = []
        self.script_results: dict[str, Callable[..., Any]] = {}
        self.async_result: Any = None
        self.find_calls = 0
        self.closed = False

    def navigate(self, url: str, wait_policy: str = "domcontentloaded") -> None:
        self.visited.append(url)
        self.current_url = url

    def find_all(self, descriptor: Any, scope: Any = None) -> list[FakeElement]:
        self.find_calls += 1
        root = self if scope is None else scope
        return list(root.children.get(descriptor, []))

    def find_in_scope(self, descriptor: Any, scope: Any = None) -> Optional[FakeElement]:
        found = self.find_all(descriptor, scope)
        return found[0] if found else None

    def nested_root(self, handle: FakeElement) -> Optional[FakeRoot]:
        return handle.shadow_root

    def is_displayed(self, handle: FakeElement) -> bool:
        return handle.visible

    def read_property(self, handle: FakeElement, name: str) -> Any:
        return handle.props.get(name)

    def is_intersecting_viewport(self, handle: FakeElement) -> bool:
        return handle.in_viewport

    def evaluate(self, script: str, *args: Any) -> Any:
        self.scripts.append(script)
        if "scrollIntoView" in script:
            handle = args[0]
            if handle.scrollable:
                handle.in_viewport = True
            return None
        handler = self.script_results.get(script)
        return handler(*args) if handler else None

    def evaluate_async(self, script: str, *args: Any) -> Any:
        if isinstance(self.async_result, BaseException):
            raise self.async_result
        return self.async_result

    def click(self, handle: FakeElement, offset: Any = None) -> None:
        self.clicked.append(handle.name)
        if handle.on_click:
            handle.on_click()

    def focus(self, handle: FakeElement) -> None:
        handle.focused = True

    def type_text(self, handle: FakeElement, text: str) -> None:
        handle.props["value"] = str(handle.props.get("value") or "") + text
        self.typed.append((handle.name, text))

    def press_key(self, key: str) -> None:
        self.keys.append(key)

    def select(self, handle: FakeElement, value: str) -> None:
        handle.props["value"] = value
        self.selected.append((handle.name, value))

    def close(self) -> None:
        self.closed = True
