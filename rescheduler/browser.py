from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchShadowRootException,
    StaleElementReferenceException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.remote.shadowroot import ShadowRoot
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support.ui import Select, WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from rescheduler.config import Settings
from rescheduler.selectors import Descriptor

logger = logging.getLogger(__name__)

BASE_URL = "https://ais.usvisa-info.com"

# Large enough that the appointment form never reflows between steps.
VIEWPORT = (2078, 1479)

_IN_VIEWPORT_JS = """
const r = arguments[0].getBoundingClientRect();
const w = window.innerWidth || document.documentElement.clientWidth;
const h = window.innerHeight || document.documentElement.clientHeight;
return r.bottom > 0 && r.right > 0 && r.top < h && r.left < w;
"""

_DISPATCH_CHANGE_JS = "arguments[0].dispatchEvent(new Event('change', {bubbles: true}));"


def build_sign_in_url(country_code: str) -> str:
    # e.g. en-ca
    return f"{BASE_URL}/{country_code}/niv/users/sign_in"


def build_appointments_url(country_code: str, schedule_id: str) -> str:
    return f"{BASE_URL}/{country_code}/niv/schedule/{schedule_id}/appointment"


def build_days_url(country_code: str, schedule_id: str, facility_id: int) -> str:
    return (
        f"{BASE_URL}/{country_code}/niv/schedule/{schedule_id}"
        f"/appointment/days/{facility_id}.json?appointments[expedite]=false"
    )


def start_driver(*, headless: bool, no_sandbox: bool = False) -> webdriver.Chrome:
    options = Options()
    # Keep it close to a real browser. Headless can be toggled via env.
    if headless:
        options.add_argument("--headless=new")
    if no_sandbox:
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-gpu")
        options.add_argument("--disable-setuid-sandbox")
    options.add_argument(f"--window-size={VIEWPORT[0]},{VIEWPORT[1]}")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-features=Translate,BackForwardCache")
    options.add_argument("--disable-background-networking")
    options.add_argument("--disable-background-timer-throttling")
    options.add_argument("--disable-renderer-backgrounding")
    options.add_argument(
        "--user-agent=Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0 Safari/537.36"
    )
    # driver.get() returns at DOMContentLoaded.
    options.page_load_strategy = "eager"

    service = Service(ChromeDriverManager().install())
    return webdriver.Chrome(service=service, options=options)


class BrowserSession:
    """The interactive session the workflow drives.

    Handles are Selenium WebElements; scopes are None (the document),
    a ShadowRoot, or a WebElement when the host has no shadow root.
    """

    def __init__(self, driver: webdriver.Chrome):
        self.driver = driver

    @property
    def current_url(self) -> str:
        return self.driver.current_url

    def navigate(self, url: str, wait_policy: str = "domcontentloaded") -> None:
        self.driver.get(url)
        if wait_policy == "load":
            # eager page loads stop at "interactive"; wait for the rest.
            WebDriverWait(self.driver, self.driver.timeouts.page_load).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )

    def find_all(self, descriptor: Descriptor, scope: Any = None) -> list[WebElement]:
        root = self.driver if scope is None else scope
        by, value = descriptor.locator()
        if isinstance(root, ShadowRoot) and by != By.CSS_SELECTOR:
            raise ValueError(f"Shadow roots only accept CSS descriptors, got {descriptor}")
        if isinstance(root, WebElement) and by == By.XPATH and value.startswith("//"):
            # Keep XPath lookups inside the host element.
            value = "." + value
        try:
            return list(root.find_elements(by, value))
        except StaleElementReferenceException:
            return []

    def find_in_scope(self, descriptor: Descriptor, scope: Any = None) -> Optional[WebElement]:
        found = self.find_all(descriptor, scope)
        return found[0] if found else None

    def nested_root(self, handle: WebElement) -> Optional[ShadowRoot]:
        try:
            return handle.shadow_root
        except (NoSuchShadowRootException, StaleElementReferenceException):
            # A detached host scopes nothing; lookups under it come back empty.
            return None

    def is_displayed(self, handle: WebElement) -> bool:
        try:
            return handle.is_displayed()
        except StaleElementReferenceException:
            return False

    def read_property(self, handle: WebElement, name: str) -> Any:
        try:
            return handle.get_property(name)
        except StaleElementReferenceException:
            # A detached element reports itself as disconnected.
            return None

    def is_intersecting_viewport(self, handle: WebElement) -> bool:
        try:
            return bool(self.driver.execute_script(_IN_VIEWPORT_JS, handle))
        except StaleElementReferenceException:
            return False

    def evaluate(self, script: str, *args: Any) -> Any:
        return self.driver.execute_script(script, *args)

    def evaluate_async(self, script: str, *args: Any) -> Any:
        return self.driver.execute_async_script(script, *args)

    def click(self, handle: WebElement, offset: Optional[tuple[float, float]] = None) -> None:
        if offset is None:
            handle.click()
            return
        # Selenium measures offsets from the element's centre.
        ActionChains(self.driver).move_to_element_with_offset(handle, *offset).click().perform()

    def focus(self, handle: WebElement) -> None:
        self.driver.execute_script("arguments[0].focus();", handle)

    def type_text(self, handle: WebElement, text: str) -> None:
        handle.send_keys(text)

    def press_key(self, key: str) -> None:
        ActionChains(self.driver).send_keys(getattr(Keys, key.upper())).perform()

    def select(self, handle: WebElement, value: str) -> None:
        Select(handle).select_by_value(value)
        self.driver.execute_script(_DISPATCH_CHANGE_JS, handle)

    def close(self) -> None:
        try:
            self.driver.quit()
        except Exception:
            logger.warning("Failed to quit driver cleanly", exc_info=True)


@contextmanager
def open_session(settings: Settings) -> Iterator[BrowserSession]:
    """One browser per cycle; always quit, whatever the cycle outcome."""
    logger.info("Starting browser (headless=%s, no_sandbox=%s)", settings.headless, settings.no_sandbox)
    driver = start_driver(headless=settings.headless, no_sandbox=settings.no_sandbox)
    session = BrowserSession(driver)
    try:
        driver.set_window_size(*VIEWPORT)
        driver.set_page_load_timeout(settings.navigation_timeout_seconds)
        driver.set_script_timeout(settings.navigation_timeout_seconds)
        yield session
    finally:
        session.close()

