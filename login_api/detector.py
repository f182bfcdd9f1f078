# login_api/detector.py
"""
Login completion detector.

After the login form has been submitted, races every success predicate and
failure landmark against a deadline and turns whatever settles first into a
single ``LoginAttemptOutcome``.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, Sequence

from .diagnostics import capture_diagnostics, take_screenshot
from .errors import FailureReason
from .outcome import Failure, LoginAttemptOutcome, Success, Timeout
from .page import PageHandle
from .predicates import HttpErrorStatus

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_S = 30.0
DEFAULT_POLL_INTERVAL_S = 0.5
DEFAULT_RETRY_BUDGET = 3

# failure beats error beats success when several settle in the same step
_PRIORITY = {"failure": 0, "error": 1, "success": 2}


@dataclass
class _Signal:
    kind: Literal["success", "failure", "error"]
    predicate: Any
    error: Optional[BaseException] = None


class LoginCompletionDetector:
    def __init__(
        self,
        page: PageHandle,
        success: Sequence[Any],
        failure: Sequence[Any] = (),
        *,
        deadline_s: float = DEFAULT_DEADLINE_S,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        retry_budget: int = DEFAULT_RETRY_BUDGET,
        artifacts_dir: str | Path = ".",
        label: str = "login",
        screenshot_on_success: bool = False,
        excerpt_chars: int = 500,
        save_content: bool = False,
    ):
        if not success:
            raise ValueError("at least one success predicate is required")
        if deadline_s <= 0:
            raise ValueError("deadline_s must be positive")
        self.page = page
        self.success = list(success)
        self.failure = list(failure)
        self.deadline_s = deadline_s
        self.poll_interval_s = poll_interval_s
        self.retry_budget = retry_budget
        self.artifacts_dir = artifacts_dir
        self.label = label
        self.screenshot_on_success = screenshot_on_success
        self.excerpt_chars = excerpt_chars
        self.save_content = save_content
        self._used = False

    async def detect(self) -> LoginAttemptOutcome:
        """Wait for the first definitive signal; single-shot per instance."""
        if self._used:
            raise RuntimeError("detect() already called for this login attempt")
        self._used = True

        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            signal = await self._race()
        except Exception as e:
            logger.error(f"Completion detection crashed: {e!r}")
            return Failure(
                reason=FailureReason.BROWSER_ERROR,
                message=str(e),
                diagnostics=await self._diagnostics("error"),
            )

        if signal is None:
            elapsed = loop.time() - started
            # timers may fire up to one clock tick early
            while elapsed < self.deadline_s:
                await asyncio.sleep(self.deadline_s - elapsed)
                elapsed = loop.time() - started
            logger.warning(f"No login signal within {self.deadline_s}s")
            return Timeout(elapsed_ms=math.ceil(elapsed * 1000), diagnostics=await self._diagnostics("timeout"))

        if signal.kind == "success":
            logger.info(f"Login succeeded ({signal.predicate.describe()})")
            return await self._success()

        if signal.kind == "error":
            message = f"{signal.predicate.describe()} kept failing: {signal.error!r}"
            logger.error(f"Predicate error: {message}")
            return Failure(
                reason=FailureReason.PREDICATE_ERROR,
                message=message,
                diagnostics=await self._diagnostics("error"),
            )

        if isinstance(signal.predicate, HttpErrorStatus):
            reason = FailureReason.NAVIGATION_ERROR
            message = f"navigation returned HTTP {self.page.navigation_error_status()}"
        else:
            reason = FailureReason.LOGIN_REJECTED
            message = f"failure landmark observed: {signal.predicate.describe()}"
        logger.error(f"Login failed: {message}")
        return Failure(reason=reason, message=message, diagnostics=await self._diagnostics("error"))

    async def _race(self) -> Optional[_Signal]:
        tasks = [asyncio.create_task(self._watch(p, "success")) for p in self.success]
        tasks += [asyncio.create_task(self._watch(p, "failure")) for p in self.failure]
        try:
            done, _ = await asyncio.wait(tasks, timeout=self.deadline_s, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        signals = [task.result() for task in done if not task.cancelled()]
        if not signals:
            return None
        return min(signals, key=lambda s: _PRIORITY[s.kind])

    async def _watch(self, predicate: Any, kind: Literal["success", "failure"]) -> _Signal:
        """Poll one predicate until it holds or errors past the retry budget."""
        loop = asyncio.get_running_loop()
        poll_ms = max(1, int(self.poll_interval_s * 1000))
        last_error: Optional[tuple] = None
        repeats = 0
        while True:
            started = loop.time()
            try:
                held = await predicate.check(self.page, poll_ms)
            except Exception as e:
                key = (type(e), str(e))
                repeats = repeats + 1 if key == last_error else 1
                last_error = key
                logger.debug(f"{predicate.describe()} raised {e!r} ({repeats}/{self.retry_budget})")
                if repeats > self.retry_budget:
                    return _Signal("error", predicate, e)
                held = False
            else:
                last_error, repeats = None, 0

            if held:
                return _Signal(kind, predicate)

            remaining = self.poll_interval_s - (loop.time() - started)
            if remaining > 0:
                await asyncio.sleep(remaining)

    async def _success(self) -> Success:
        try:
            final_url = self.page.current_url()
        except Exception as e:
            logger.warning(f"Could not read final URL: {e!r}")
            final_url = ""
        screenshot_path = None
        if self.screenshot_on_success:
            screenshot_path = await take_screenshot(self.page, self.artifacts_dir, f"{self.label}-success")
        return Success(final_url=final_url, screenshot_path=screenshot_path)

    async def _diagnostics(self, suffix: str):
        return await capture_diagnostics(
            self.page,
            self.artifacts_dir,
            f"{self.label}-{suffix}",
            excerpt_chars=self.excerpt_chars,
            save_content=self.save_content,
        )
