# login_api/profiles.py
"""
Site login profiles.

A profile is everything that differs between target sites: where the login
page lives, which credential variables to read, the form steps to perform and
the signals that prove (or disprove) a successful login. One driver and one
detector consume any profile.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from .errors import ConfigurationError, UnknownProfile
from .predicates import AllOf, ElementVisible, FailureLandmark, HttpErrorStatus, NetworkIdle, SuccessPredicate, UrlMatches


class FormStep(BaseModel):
    action: Literal["fill", "click"]
    selector: str
    value: Optional[Literal["identifier", "secret"]] = None
    timeout_ms: Optional[int] = None          # falls back to the profile's step_timeout_ms
    focus_delay_ms: int = 0                   # click into the field and pause before filling
    wait_for_response: Optional[str] = None   # URL substring of a 200 response the click must trigger

    @model_validator(mode="after")
    def _fill_needs_value(self):
        if self.action == "fill" and self.value is None:
            raise ValueError("fill steps need value 'identifier' or 'secret'")
        return self


class BrowserOptions(BaseModel):
    engine: Literal["chromium", "firefox", "webkit"] = "firefox"
    headless: bool = True
    slow_mo_ms: int = 0
    args: List[str] = []
    firefox_user_prefs: Dict[str, Any] = {}
    viewport: Dict[str, int] = {"width": 1280, "height": 800}
    user_agent: Optional[str] = None
    accept_downloads: bool = True
    default_timeout_ms: Optional[int] = None


class SiteLoginProfile(BaseModel):
    name: str
    login_url: str
    env_prefix: str
    steps: List[FormStep] = Field(min_length=1)
    success: List[SuccessPredicate] = Field(min_length=1)
    failure: List[FailureLandmark] = []
    deadline_s: float = Field(30.0, gt=0)
    step_timeout_ms: int = Field(10000, gt=0)
    hold_open_ms: int = 0                     # keep the browser open after the outcome
    screenshot_on_success: bool = False       # OR-ed with the SCREENSHOT_ON_SUCCESS setting
    browser: BrowserOptions = BrowserOptions()


_FIREFOX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:123.0) Gecko/20100101 Firefox/123.0"

BUILTIN_PROFILES: Dict[str, SiteLoginProfile] = {
    "asana": SiteLoginProfile(
        name="asana",
        login_url="https://app.asana.com/",
        env_prefix="ASANA",
        steps=[
            FormStep(action="fill", selector='input[type="email"].TextInput', value="identifier"),
            FormStep(
                action="click",
                selector='div[role="button"].LoginEmailForm-continueButton',
                wait_for_response="asana.com",
            ),
            FormStep(action="fill", selector='input[type="password"]', value="secret"),
            FormStep(
                action="click",
                selector='div[role="button"].LoginPasswordForm-loginButton',
                wait_for_response="asana.com",
            ),
        ],
        success=[
            ElementVisible(selector=".Dashboard, .Topbar"),
            AllOf(predicates=[UrlMatches(pattern="https://app.asana.com/0/**", mode="glob"), NetworkIdle()]),
        ],
        failure=[ElementVisible(selector='.LoginPasswordForm-error, [role="alert"]'), HttpErrorStatus()],
        browser=BrowserOptions(
            firefox_user_prefs={
                "network.http.connection-timeout": 60000,
                "network.http.response-timeout": 60000,
            },
            user_agent=_FIREFOX_UA,
        ),
    ),
    "logz": SiteLoginProfile(
        name="logz",
        login_url="https://app.logz.io/",
        env_prefix="LOGZ",
        steps=[
            FormStep(
                action="fill",
                selector='[data-logz-test-subject="email-field"] input[type="email"]',
                value="identifier",
            ),
            FormStep(
                action="fill",
                selector='[data-logz-test-subject="password-field"] input[type="password"]',
                value="secret",
            ),
            FormStep(action="click", selector='[data-logz-test-subject="sign-in-button"]'),
        ],
        success=[UrlMatches(pattern=r"^https://app(-\w+)?\.logz\.io/#/dashboard", mode="regex")],
        failure=[ElementVisible(selector='[role="alert"]'), HttpErrorStatus()],
    ),
    "servicenow": SiteLoginProfile(
        name="servicenow",
        login_url="https://dev282630.service-now.com",
        env_prefix="SERVICENOW",
        steps=[
            FormStep(action="fill", selector="#user_name", value="identifier", focus_delay_ms=500),
            FormStep(action="fill", selector="#user_password", value="secret", focus_delay_ms=500),
            FormStep(action="click", selector="#sysverb_login"),
        ],
        success=[
            ElementVisible(selector="div.navpage-header"),
            UrlMatches(pattern="/now/nav/ui/"),
        ],
        failure=[ElementVisible(selector="#output_messages .outputmsg_error"), HttpErrorStatus()],
        deadline_s=60.0,
        step_timeout_ms=30000,
        hold_open_ms=2000,
        screenshot_on_success=True,
        browser=BrowserOptions(
            viewport={"width": 1920, "height": 1080},
            user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) Firefox/100.0",
            default_timeout_ms=60000,
        ),
    ),
}

_profile_list = TypeAdapter(List[SiteLoginProfile])


def load_profiles(path: str | Path) -> Dict[str, SiteLoginProfile]:
    """Read extra profiles from a JSON array of profile objects."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
        profiles = _profile_list.validate_python(json.loads(raw))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not load profiles from {path}: {e}") from e
    return {p.name: p for p in profiles}


def available_profiles(profiles_file: str | Path | None = None) -> Dict[str, SiteLoginProfile]:
    profiles = dict(BUILTIN_PROFILES)
    if profiles_file:
        profiles.update(load_profiles(profiles_file))
    return profiles


def get_profile(name: str, profiles_file: str | Path | None = None) -> SiteLoginProfile:
    profiles = available_profiles(profiles_file)
    try:
        return profiles[name]
    except KeyError:
        raise UnknownProfile(f"unknown site {name!r}; known: {', '.join(sorted(profiles))}") from None
