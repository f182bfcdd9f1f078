# login_api/predicates.py
"""
Success predicates and failure landmarks.

Each predicate is a small pydantic model (so profiles can be loaded from JSON)
with an async ``check(page, timeout_ms)`` that waits up to ``timeout_ms`` for the
condition and returns whether it held. Checks may raise; the detector decides
what repeated errors mean.
"""

import fnmatch
import re
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, model_validator

from .page import PageHandle


class UrlMatches(BaseModel):
    kind: Literal["url"] = "url"
    pattern: str
    mode: Literal["substring", "glob", "regex"] = "substring"

    @model_validator(mode="after")
    def _compile_regex(self):
        if self.mode == "regex":
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"invalid regex {self.pattern!r}: {e}") from e
        return self

    def matches(self, url: str) -> bool:
        if self.mode == "substring":
            return self.pattern in url
        if self.mode == "regex":
            return re.search(self.pattern, url) is not None
        return fnmatch.fnmatchcase(url, self.pattern)

    async def check(self, page: PageHandle, timeout_ms: int) -> bool:
        return await page.wait_for_url_match(self.matches, timeout_ms)

    def describe(self) -> str:
        return f"url {self.mode} {self.pattern!r}"


class ElementVisible(BaseModel):
    kind: Literal["element"] = "element"
    selector: str

    async def check(self, page: PageHandle, timeout_ms: int) -> bool:
        return await page.wait_for_element_visible(self.selector, timeout_ms)

    def describe(self) -> str:
        return f"element {self.selector!r}"


class NetworkIdle(BaseModel):
    kind: Literal["network_idle"] = "network_idle"

    async def check(self, page: PageHandle, timeout_ms: int) -> bool:
        return await page.wait_for_network_idle(timeout_ms)

    def describe(self) -> str:
        return "network idle"


class AllOf(BaseModel):
    """Holds only when every member holds (e.g. URL pattern plus a DOM landmark)."""

    kind: Literal["all"] = "all"
    predicates: List["SuccessPredicate"] = Field(min_length=1)

    async def check(self, page: PageHandle, timeout_ms: int) -> bool:
        for predicate in self.predicates:
            if not await predicate.check(page, timeout_ms):
                return False
        return True

    def describe(self) -> str:
        return " and ".join(p.describe() for p in self.predicates)


class HttpErrorStatus(BaseModel):
    """Main-frame navigation answered with an error status."""

    kind: Literal["http_error"] = "http_error"
    min_status: int = 400

    async def check(self, page: PageHandle, timeout_ms: int) -> bool:
        status = page.navigation_error_status()
        return status is not None and status >= self.min_status

    def describe(self) -> str:
        return f"http status >= {self.min_status}"


SuccessPredicate = Annotated[Union[UrlMatches, ElementVisible, NetworkIdle, AllOf], Field(discriminator="kind")]
FailureLandmark = Annotated[Union[ElementVisible, HttpErrorStatus, UrlMatches], Field(discriminator="kind")]

AllOf.model_rebuild()
