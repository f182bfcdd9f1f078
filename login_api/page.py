# login_api/page.py
"""
Page handle used by the login driver and the completion detector.

``PageHandle`` is the narrow surface both depend on; ``PlaywrightPage`` backs it
with a real Playwright page. Browser-side callbacks (console output, page
errors, failed responses) are turned into ``PageEvent`` items on a queue the
caller owns instead of being printed from inside the handlers.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import ElementNotFound, NavigationError

EventKind = Literal["console", "pageerror", "response_error"]


@dataclass
class PageEvent:
    kind: EventKind
    message: str
    timestamp: float = field(default_factory=time.time)


class PageHandle(Protocol):
    async def navigate(self, url: str, timeout_ms: int) -> Optional[int]: ...

    async def fill(self, selector: str, value: str, timeout_ms: int) -> None: ...

    async def click(self, selector: str, timeout_ms: int, wait_for_response: Optional[str] = None) -> None: ...

    async def wait_for_url_match(self, predicate: Callable[[str], bool], timeout_ms: int) -> bool: ...

    async def wait_for_element_visible(self, selector: str, timeout_ms: int) -> bool: ...

    async def wait_for_network_idle(self, timeout_ms: int) -> bool: ...

    def navigation_error_status(self) -> Optional[int]: ...

    def current_url(self) -> str: ...

    async def content(self) -> str: ...

    async def screenshot(self, path: str) -> None: ...


class PlaywrightPage:
    def __init__(self, page: Page, events: "asyncio.Queue[PageEvent] | None" = None):
        self._page = page
        self._events = events
        self._navigation_error: Optional[int] = None
        page.on("console", self._on_console)
        page.on("pageerror", self._on_pageerror)
        page.on("response", self._on_response)

    def _emit(self, kind: EventKind, message: str) -> None:
        if self._events is not None:
            self._events.put_nowait(PageEvent(kind=kind, message=message))

    def _on_console(self, msg) -> None:
        self._emit("console", f"{msg.type}: {msg.text}")

    def _on_pageerror(self, error) -> None:
        self._emit("pageerror", str(error))

    def _on_response(self, response) -> None:
        if response.status < 400:
            return
        self._emit("response_error", f"{response.status} {response.url}")
        try:
            is_main_nav = response.request.is_navigation_request() and response.frame == self._page.main_frame
        except PlaywrightError:
            # service worker responses have no frame
            return
        if is_main_nav:
            self._navigation_error = response.status

    async def navigate(self, url: str, timeout_ms: int) -> Optional[int]:
        try:
            response = await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(f"Timed out loading {url} after {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e.message}") from e
        if response is None:
            return None
        if not response.ok:
            raise NavigationError(
                f"Failed to load {url}: {response.status} {response.status_text}", status=response.status
            )
        return response.status

    async def fill(self, selector: str, value: str, timeout_ms: int) -> None:
        if not await self.wait_for_element_visible(selector, timeout_ms):
            raise ElementNotFound(selector, timeout_ms)
        await self._page.fill(selector, value, timeout=timeout_ms)

    async def click(self, selector: str, timeout_ms: int, wait_for_response: Optional[str] = None) -> None:
        if not await self.wait_for_element_visible(selector, timeout_ms):
            raise ElementNotFound(selector, timeout_ms)
        if not wait_for_response:
            await self._page.click(selector, timeout=timeout_ms)
            return
        # wait for the request the click triggers, not just the click itself
        async with self._page.expect_response(
            lambda r: wait_for_response in r.url and r.status == 200, timeout=timeout_ms
        ):
            await self._page.click(selector, timeout=timeout_ms)

    async def wait_for_url_match(self, predicate: Callable[[str], bool], timeout_ms: int) -> bool:
        try:
            await self._page.wait_for_url(predicate, wait_until="commit", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_element_visible(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self._page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_network_idle(self, timeout_ms: int) -> bool:
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    def navigation_error_status(self) -> Optional[int]:
        return self._navigation_error

    def current_url(self) -> str:
        return self._page.url

    async def content(self) -> str:
        return await self._page.content()

    async def screenshot(self, path: str) -> None:
        await self._page.screenshot(path=path, full_page=True)
