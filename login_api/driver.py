# login_api/driver.py
import asyncio
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .credentials import Credentials
from .detector import LoginCompletionDetector
from .diagnostics import capture_diagnostics
from .errors import FailureReason, LoginError
from .outcome import Failure, LoginAttemptOutcome
from .page import PageEvent, PageHandle, PlaywrightPage
from .profiles import FormStep, SiteLoginProfile
from .settings import Settings

logger = logging.getLogger(__name__)


class LoginDriver:
    """Runs one login attempt for one site profile.

    Owns the browser for the duration of ``run()`` and closes it on every exit
    path. Page events go to ``events`` when the caller supplies a queue.
    """

    def __init__(
        self,
        profile: SiteLoginProfile,
        credentials: Credentials,
        settings: Settings,
        events: "Optional[asyncio.Queue[PageEvent]]" = None,
    ):
        self.profile = profile
        self.credentials = credentials
        self.settings = settings
        self.events = events

    @property
    def deadline_s(self) -> float:
        if self.settings.DEADLINE_S is not None:
            return self.settings.DEADLINE_S
        return self.profile.deadline_s

    @property
    def step_timeout_ms(self) -> int:
        if self.settings.STEP_TIMEOUT_MS is not None:
            return self.settings.STEP_TIMEOUT_MS
        return self.profile.step_timeout_ms

    async def run(self) -> LoginAttemptOutcome:
        opts = self.profile.browser
        engine = self.settings.BROWSER or opts.engine
        headless = opts.headless if self.settings.HEADLESS is None else self.settings.HEADLESS
        logger.info(f"Launching {engine} (headless={headless}) for {self.profile.name}")

        async with async_playwright() as pw:
            launch_args = {"headless": headless, "slow_mo": opts.slow_mo_ms}
            if opts.args:
                launch_args["args"] = opts.args
            if engine == "firefox" and opts.firefox_user_prefs:
                launch_args["firefox_user_prefs"] = opts.firefox_user_prefs
            try:
                browser = await getattr(pw, engine).launch(**launch_args)
            except PlaywrightError as e:
                logger.error(f"Browser launch failed: {e.message}")
                return Failure(reason=FailureReason.BROWSER_ERROR, message=e.message)

            try:
                context_args = {"viewport": opts.viewport, "accept_downloads": opts.accept_downloads}
                if opts.user_agent:
                    context_args["user_agent"] = opts.user_agent
                context = await browser.new_context(**context_args)
                page = await context.new_page()
                if opts.default_timeout_ms:
                    page.set_default_timeout(opts.default_timeout_ms)
                    page.set_default_navigation_timeout(opts.default_timeout_ms)
            except PlaywrightError as e:
                logger.error(f"Browser setup failed: {e.message}")
                await browser.close()
                return Failure(reason=FailureReason.BROWSER_ERROR, message=e.message)

            try:
                outcome = await self.attempt(PlaywrightPage(page, self.events))
                if self.profile.hold_open_ms:
                    try:
                        await page.wait_for_timeout(self.profile.hold_open_ms)
                    except PlaywrightError as e:
                        logger.warning(f"Browser closed during hold-open: {e.message}")
                return outcome
            finally:
                await browser.close()

    async def attempt(self, page: PageHandle) -> LoginAttemptOutcome:
        """Navigate, fill the form, then hand over to the completion detector."""
        try:
            logger.info(f"Navigating to {self.profile.login_url}...")
            await page.navigate(self.profile.login_url, self.settings.NAVIGATION_TIMEOUT_MS)
            for step in self.profile.steps:
                await self._perform(page, step)
        except LoginError as e:
            logger.error(f"Login failed: {e}")
            return Failure(reason=e.reason, message=str(e), diagnostics=await self._diagnostics(page))
        except PlaywrightError as e:
            logger.error(f"Browser error: {e.message}")
            return Failure(
                reason=FailureReason.BROWSER_ERROR, message=e.message, diagnostics=await self._diagnostics(page)
            )

        logger.info("Waiting for login to complete...")
        detector = LoginCompletionDetector(
            page,
            self.profile.success,
            self.profile.failure,
            deadline_s=self.deadline_s,
            poll_interval_s=self.settings.POLL_INTERVAL_S,
            retry_budget=self.settings.PREDICATE_RETRY_BUDGET,
            artifacts_dir=self.settings.ARTIFACTS_DIR,
            label=self.profile.name,
            screenshot_on_success=self.settings.SCREENSHOT_ON_SUCCESS or self.profile.screenshot_on_success,
            excerpt_chars=self.settings.CONTENT_EXCERPT_CHARS,
            save_content=self.settings.SAVE_PAGE_CONTENT,
        )
        return await detector.detect()

    async def _perform(self, page: PageHandle, step: FormStep) -> None:
        timeout_ms = step.timeout_ms or self.step_timeout_ms
        if step.action == "click":
            logger.info(f"Clicking {step.selector}...")
            await page.click(step.selector, timeout_ms, wait_for_response=step.wait_for_response)
            return

        value = self.credentials.identifier if step.value == "identifier" else self.credentials.secret
        logger.info(f"Filling {step.selector} ({step.value})...")
        if step.focus_delay_ms:
            await page.click(step.selector, timeout_ms)
            await asyncio.sleep(step.focus_delay_ms / 1000)
        await page.fill(step.selector, value, timeout_ms)

    async def _diagnostics(self, page: PageHandle):
        return await capture_diagnostics(
            page,
            self.settings.ARTIFACTS_DIR,
            f"{self.profile.name}-error",
            excerpt_chars=self.settings.CONTENT_EXCERPT_CHARS,
            save_content=self.settings.SAVE_PAGE_CONTENT,
        )
