"""Test configuration and fixtures for the site login tests."""

import asyncio
import time
from pathlib import Path

import pytest

from login_api.errors import ElementNotFound
from login_api.predicates import ElementVisible, UrlMatches
from login_api.profiles import FormStep, SiteLoginProfile
from login_api.settings import Settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n"


class FakePage:
    """Scripted page handle.

    Times are seconds after construction: ``url_changes`` is a list of
    ``(at, url)``, ``elements`` maps selector -> time it becomes visible and
    ``raises`` maps selector -> ``(exception, count)`` (count ``None`` = forever).
    """

    def __init__(
        self,
        url="https://example.com/login",
        url_changes=(),
        elements=None,
        raises=None,
        network_idle_at=None,
        navigation_error=None,
        html="<html><body>login page</body></html>",
        navigate_error=None,
        screenshot_error=None,
        content_error=None,
    ):
        self._started = time.monotonic()
        self.initial_url = url
        self.url_changes = list(url_changes)
        self.elements = dict(elements or {})
        self.raises = dict(raises or {})
        self.network_idle_at = network_idle_at
        self.navigation_error = navigation_error
        self.html = html
        self.navigate_error = navigate_error
        self.screenshot_error = screenshot_error
        self.content_error = content_error
        self.navigations = []
        self.filled = []
        self.clicked = []
        self.screenshots = []

    def _now(self):
        return time.monotonic() - self._started

    async def _poll(self, condition, timeout_ms):
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            if condition():
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(0.005)

    def _visible(self, selector):
        at = self.elements.get(selector)
        return at is not None and self._now() >= at

    async def navigate(self, url, timeout_ms):
        self.navigations.append(url)
        if self.navigate_error is not None:
            raise self.navigate_error
        return 200

    async def fill(self, selector, value, timeout_ms):
        if not await self.wait_for_element_visible(selector, timeout_ms):
            raise ElementNotFound(selector, timeout_ms)
        self.filled.append((selector, value))

    async def click(self, selector, timeout_ms, wait_for_response=None):
        if not await self.wait_for_element_visible(selector, timeout_ms):
            raise ElementNotFound(selector, timeout_ms)
        self.clicked.append(selector)

    async def wait_for_url_match(self, predicate, timeout_ms):
        return await self._poll(lambda: predicate(self.current_url()), timeout_ms)

    async def wait_for_element_visible(self, selector, timeout_ms):
        if selector in self.raises:
            error, count = self.raises[selector]
            if count is None or count > 0:
                if count is not None:
                    self.raises[selector] = (error, count - 1)
                raise error
        return await self._poll(lambda: self._visible(selector), timeout_ms)

    async def wait_for_network_idle(self, timeout_ms):
        return await self._poll(
            lambda: self.network_idle_at is not None and self._now() >= self.network_idle_at, timeout_ms
        )

    def navigation_error_status(self):
        if self.navigation_error is None:
            return None
        at, status = self.navigation_error
        return status if self._now() >= at else None

    def current_url(self):
        url = self.initial_url
        for at, changed in self.url_changes:
            if self._now() >= at:
                url = changed
        return url

    async def content(self):
        if self.content_error is not None:
            raise self.content_error
        return self.html

    async def screenshot(self, path):
        if self.screenshot_error is not None:
            raise self.screenshot_error
        Path(path).write_bytes(PNG_BYTES)
        self.screenshots.append(path)


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    path = tmp_path / "artifacts"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(artifacts_dir: Path) -> Settings:
    """Fast settings that ignore any .env in the working directory."""
    return Settings(
        _env_file=None,
        ARTIFACTS_DIR=str(artifacts_dir),
        POLL_INTERVAL_S=0.02,
        PREDICATE_RETRY_BUDGET=2,
        DEADLINE_S=1.0,
        STEP_TIMEOUT_MS=200,
    )


@pytest.fixture
def example_profile() -> SiteLoginProfile:
    return SiteLoginProfile(
        name="example",
        login_url="https://example.com/login",
        env_prefix="EXAMPLE",
        steps=[
            FormStep(action="fill", selector="#user", value="identifier"),
            FormStep(action="fill", selector="#pass", value="secret"),
            FormStep(action="click", selector="#submit"),
        ],
        success=[UrlMatches(pattern="/home/")],
        failure=[ElementVisible(selector=".error-banner")],
    )


@pytest.fixture
def login_form_elements() -> dict:
    return {"#user": 0, "#pass": 0, "#submit": 0}
