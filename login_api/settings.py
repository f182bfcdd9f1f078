# login_api/settings.py
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    ARTIFACTS_DIR: str = "."                  # screenshots / content excerpts land here
    BROWSER: Literal["chromium", "firefox", "webkit"] | None = None   # overrides the profile's engine
    HEADLESS: bool | None = None              # overrides the profile's headless flag
    DEADLINE_S: float | None = Field(None, gt=0)    # overrides the profile's detector deadline
    POLL_INTERVAL_S: float = Field(0.5, gt=0)
    PREDICATE_RETRY_BUDGET: int = 3
    STEP_TIMEOUT_MS: int | None = Field(None, gt=0)
    NAVIGATION_TIMEOUT_MS: int = 30000
    SCREENSHOT_ON_SUCCESS: bool = False
    SAVE_PAGE_CONTENT: bool = False
    CONTENT_EXCERPT_CHARS: int = 500
    PROFILES_FILE: str | None = None          # JSON list of extra site profiles
    CONTROL_PLANE_URL: str | None = None      # e.g., https://control-plane.example.com
    CONTROL_PLANE_TOKEN: str | None = None    # bearer for POST /api/login-attempts
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
