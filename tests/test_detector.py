"""Tests for the login completion detector."""

import asyncio
import time
from pathlib import Path

import pytest

from conftest import FakePage
from login_api.detector import LoginCompletionDetector
from login_api.errors import FailureReason
from login_api.outcome import Failure, Success, Timeout
from login_api.predicates import AllOf, ElementVisible, HttpErrorStatus, NetworkIdle, UrlMatches


def make_detector(page, success, failure=(), artifacts_dir=".", deadline_s=1.0, **kwargs):
    return LoginCompletionDetector(
        page,
        success,
        failure,
        deadline_s=deadline_s,
        poll_interval_s=0.02,
        retry_budget=2,
        artifacts_dir=artifacts_dir,
        label="example",
        **kwargs,
    )


class TestSuccess:
    """Success predicates that hold before the deadline."""

    @pytest.mark.asyncio
    async def test_url_substring_becomes_true(self, artifacts_dir):
        page = FakePage(url_changes=[(0.05, "https://example.com/home/42")])
        detector = make_detector(page, [UrlMatches(pattern="/home/")], artifacts_dir=artifacts_dir)

        started = time.monotonic()
        outcome = await detector.detect()

        assert isinstance(outcome, Success)
        assert outcome.final_url == "https://example.com/home/42"
        assert time.monotonic() - started < 1.0
        assert page.screenshots == []

    @pytest.mark.asyncio
    async def test_any_predicate_wins(self, artifacts_dir):
        page = FakePage(elements={".Topbar": 0.03})
        detector = make_detector(
            page,
            [UrlMatches(pattern="/never/"), ElementVisible(selector=".Topbar")],
            artifacts_dir=artifacts_dir,
        )

        outcome = await detector.detect()

        assert isinstance(outcome, Success)
        assert outcome.final_url == "https://example.com/login"

    @pytest.mark.asyncio
    async def test_all_of_needs_every_member(self, artifacts_dir):
        page = FakePage(url_changes=[(0.0, "https://app.example.com/0/home")], network_idle_at=0.1)
        predicate = AllOf(predicates=[UrlMatches(pattern="https://app.example.com/0/**", mode="glob"), NetworkIdle()])
        detector = make_detector(page, [predicate], artifacts_dir=artifacts_dir)

        started = time.monotonic()
        outcome = await detector.detect()

        assert isinstance(outcome, Success)
        assert time.monotonic() - started >= 0.09

    @pytest.mark.asyncio
    async def test_transient_errors_are_not_fatal(self, artifacts_dir):
        page = FakePage(
            elements={".Dashboard": 0.0},
            raises={".Dashboard": (RuntimeError("Execution context was destroyed"), 2)},
        )
        detector = make_detector(page, [ElementVisible(selector=".Dashboard")], artifacts_dir=artifacts_dir)

        outcome = await detector.detect()

        assert isinstance(outcome, Success)

    @pytest.mark.asyncio
    async def test_screenshot_on_success(self, artifacts_dir):
        page = FakePage(url_changes=[(0.0, "https://example.com/home/1")])
        detector = make_detector(
            page, [UrlMatches(pattern="/home/")], artifacts_dir=artifacts_dir, screenshot_on_success=True
        )

        outcome = await detector.detect()

        assert isinstance(outcome, Success)
        assert outcome.screenshot_path is not None
        assert Path(outcome.screenshot_path).exists()
        assert "example-success" in outcome.screenshot_path

    @pytest.mark.asyncio
    async def test_success_screenshot_failure_still_succeeds(self, artifacts_dir):
        page = FakePage(url_changes=[(0.0, "https://example.com/home/1")], screenshot_error=OSError("disk full"))
        detector = make_detector(
            page, [UrlMatches(pattern="/home/")], artifacts_dir=artifacts_dir, screenshot_on_success=True
        )

        outcome = await detector.detect()

        assert isinstance(outcome, Success)
        assert outcome.screenshot_path is None


class TestFailure:
    """Failure landmarks short-circuit the wait."""

    @pytest.mark.asyncio
    async def test_error_banner_rejects_login(self, artifacts_dir):
        page = FakePage(elements={".error-banner": 0.05}, html="<div class='error-banner'>Bad password</div>")
        detector = make_detector(
            page,
            [UrlMatches(pattern="/home/")],
            [ElementVisible(selector=".error-banner")],
            artifacts_dir=artifacts_dir,
            deadline_s=5.0,
        )

        started = time.monotonic()
        outcome = await detector.detect()

        assert isinstance(outcome, Failure)
        assert outcome.reason == FailureReason.LOGIN_REJECTED
        assert time.monotonic() - started < 5.0
        assert outcome.diagnostics is not None
        assert outcome.diagnostics.screenshot_path is not None
        assert Path(outcome.diagnostics.screenshot_path).exists()
        assert outcome.diagnostics.page_url == "https://example.com/login"
        assert "Bad password" in outcome.diagnostics.page_content_excerpt

    @pytest.mark.asyncio
    async def test_failure_before_success(self, artifacts_dir):
        page = FakePage(
            elements={".error-banner": 0.02},
            url_changes=[(0.3, "https://example.com/home/1")],
        )
        detector = make_detector(
            page,
            [UrlMatches(pattern="/home/")],
            [ElementVisible(selector=".error-banner")],
            artifacts_dir=artifacts_dir,
        )

        outcome = await detector.detect()

        assert isinstance(outcome, Failure)
        assert outcome.reason == FailureReason.LOGIN_REJECTED

    @pytest.mark.asyncio
    async def test_failure_wins_when_both_already_hold(self, artifacts_dir):
        page = FakePage(elements={".error-banner": 0.0}, url_changes=[(0.0, "https://example.com/home/1")])
        detector = make_detector(
            page,
            [UrlMatches(pattern="/home/")],
            [ElementVisible(selector=".error-banner")],
            artifacts_dir=artifacts_dir,
        )

        outcome = await detector.detect()

        assert isinstance(outcome, Failure)

    @pytest.mark.asyncio
    async def test_http_error_status_is_navigation_error(self, artifacts_dir):
        page = FakePage(navigation_error=(0.02, 503))
        detector = make_detector(
            page, [UrlMatches(pattern="/home/")], [HttpErrorStatus()], artifacts_dir=artifacts_dir
        )

        outcome = await detector.detect()

        assert isinstance(outcome, Failure)
        assert outcome.reason == FailureReason.NAVIGATION_ERROR
        assert "503" in outcome.message

    @pytest.mark.asyncio
    async def test_repeated_predicate_error_fails(self, artifacts_dir):
        page = FakePage(raises={".Dashboard": (ValueError("bad selector"), None)})
        detector = make_detector(
            page, [ElementVisible(selector=".Dashboard")], artifacts_dir=artifacts_dir, deadline_s=5.0
        )

        started = time.monotonic()
        outcome = await detector.detect()

        assert isinstance(outcome, Failure)
        assert outcome.reason == FailureReason.PREDICATE_ERROR
        assert "bad selector" in outcome.message
        assert time.monotonic() - started < 5.0


class TestTimeout:
    """Nothing settles before the deadline."""

    @pytest.mark.asyncio
    async def test_deadline_elapses(self, artifacts_dir):
        page = FakePage()
        detector = make_detector(
            page,
            [UrlMatches(pattern="/home/")],
            [ElementVisible(selector=".error-banner")],
            artifacts_dir=artifacts_dir,
            deadline_s=0.3,
        )

        started = time.monotonic()
        outcome = await detector.detect()

        assert isinstance(outcome, Timeout)
        assert outcome.elapsed_ms >= 300
        assert time.monotonic() - started >= 0.3
        assert outcome.diagnostics is not None
        assert outcome.diagnostics.screenshot_path is not None

    @pytest.mark.asyncio
    async def test_capture_errors_keep_timeout(self, artifacts_dir):
        page = FakePage(screenshot_error=RuntimeError("target closed"), content_error=RuntimeError("target closed"))
        detector = make_detector(page, [UrlMatches(pattern="/home/")], artifacts_dir=artifacts_dir, deadline_s=0.1)

        outcome = await detector.detect()

        assert isinstance(outcome, Timeout)
        assert outcome.diagnostics.screenshot_path is None
        assert outcome.diagnostics.page_content_excerpt is None
        assert outcome.diagnostics.page_url == "https://example.com/login"

    @pytest.mark.asyncio
    async def test_late_success_is_ignored(self, artifacts_dir):
        page = FakePage(url_changes=[(0.5, "https://example.com/home/1")])
        detector = make_detector(page, [UrlMatches(pattern="/home/")], artifacts_dir=artifacts_dir, deadline_s=0.1)

        outcome = await detector.detect()

        assert isinstance(outcome, Timeout)


class TestLifecycle:
    """Construction rules and cleanup."""

    def test_requires_a_success_predicate(self):
        with pytest.raises(ValueError):
            LoginCompletionDetector(FakePage(), [])

    @pytest.mark.asyncio
    async def test_single_shot(self, artifacts_dir):
        page = FakePage(url_changes=[(0.0, "https://example.com/home/1")])
        detector = make_detector(page, [UrlMatches(pattern="/home/")], artifacts_dir=artifacts_dir)

        await detector.detect()

        with pytest.raises(RuntimeError):
            await detector.detect()

    @pytest.mark.asyncio
    async def test_no_tasks_left_behind(self, artifacts_dir):
        page = FakePage(url_changes=[(0.02, "https://example.com/home/1")])
        detector = make_detector(
            page,
            [UrlMatches(pattern="/home/"), ElementVisible(selector=".never")],
            [ElementVisible(selector=".error-banner")],
            artifacts_dir=artifacts_dir,
        )

        await detector.detect()

        pending = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        assert pending == []
