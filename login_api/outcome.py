# login_api/outcome.py
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from .errors import FailureReason


class Diagnostics(BaseModel):
    screenshot_path: Optional[str] = None
    page_url: str = ""
    page_content_excerpt: Optional[str] = None


class Success(BaseModel):
    kind: Literal["success"] = "success"
    final_url: str
    screenshot_path: Optional[str] = None


class Failure(BaseModel):
    kind: Literal["failure"] = "failure"
    reason: FailureReason
    message: str = ""
    diagnostics: Optional[Diagnostics] = None


class Timeout(BaseModel):
    kind: Literal["timeout"] = "timeout"
    elapsed_ms: int
    diagnostics: Optional[Diagnostics] = None


LoginAttemptOutcome = Annotated[Union[Success, Failure, Timeout], Field(discriminator="kind")]

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_TIMEOUT = 2
EXIT_CONFIG_ERROR = 3
EXIT_UNKNOWN_SITE = 4


def exit_status(outcome: Union[Success, Failure, Timeout]) -> int:
    """Process exit status for an outcome (0 only on success)."""
    if isinstance(outcome, Success):
        return EXIT_SUCCESS
    if isinstance(outcome, Timeout):
        return EXIT_TIMEOUT
    return EXIT_FAILURE
