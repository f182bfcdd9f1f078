# login_api/errors.py
from enum import Enum


class FailureReason(str, Enum):
    NAVIGATION_ERROR = "NavigationError"
    ELEMENT_NOT_FOUND = "ElementNotFound"
    LOGIN_REJECTED = "LoginRejected"
    PREDICATE_ERROR = "PredicateError"
    BROWSER_ERROR = "BrowserError"


class ConfigurationError(Exception):
    """Raised before any browser is launched; never turned into an outcome."""


class UnknownProfile(KeyError): ...


class LoginError(Exception):
    reason = FailureReason.BROWSER_ERROR


class NavigationError(LoginError):
    reason = FailureReason.NAVIGATION_ERROR

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ElementNotFound(LoginError):
    reason = FailureReason.ELEMENT_NOT_FOUND

    def __init__(self, selector: str, timeout_ms: int):
        super().__init__(f"element {selector!r} not visible within {timeout_ms}ms")
        self.selector = selector
