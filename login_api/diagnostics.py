# login_api/diagnostics.py
import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from .outcome import Diagnostics
from .page import PageHandle

logger = logging.getLogger(__name__)

CAPTURE_TIMEOUT_S = 10


def artifact_stem(directory: str | Path, label: str) -> Path:
    """Timestamp-suffixed path stem so repeated runs never overwrite each other."""
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return Path(directory) / f"{label}-{timestamp}"


async def take_screenshot(page: PageHandle, directory: str | Path, label: str) -> str | None:
    """Best-effort screenshot; returns the written path or None."""
    path = f"{artifact_stem(directory, label)}.png"
    try:
        Path(directory).mkdir(parents=True, exist_ok=True)
        await asyncio.wait_for(page.screenshot(path), timeout=CAPTURE_TIMEOUT_S)
    except Exception as e:
        logger.warning(f"Screenshot failed: {e!r}")
        return None
    logger.info(f"Screenshot saved to {path}")
    return path


async def capture_diagnostics(
    page: PageHandle,
    directory: str | Path,
    label: str,
    excerpt_chars: int = 500,
    save_content: bool = False,
) -> Diagnostics:
    """Collect URL, a content excerpt and a screenshot.

    Every piece is attempted independently and a failure in one is logged, not
    raised, so the caller's outcome is never replaced by a capture error.
    """
    diagnostics = Diagnostics()

    try:
        diagnostics.page_url = page.current_url()
    except Exception as e:
        logger.warning(f"Could not read current URL: {e!r}")

    diagnostics.screenshot_path = await take_screenshot(page, directory, label)

    try:
        content = await asyncio.wait_for(page.content(), timeout=CAPTURE_TIMEOUT_S)
    except Exception as e:
        logger.warning(f"Could not read page content: {e!r}")
    else:
        excerpt = content[:excerpt_chars]
        diagnostics.page_content_excerpt = excerpt
        logger.debug(f"Page content: {excerpt}...")
        if save_content:
            try:
                content_path = Path(f"{artifact_stem(directory, label)}.html")
                content_path.write_text(excerpt, encoding="utf-8")
                logger.info(f"Page content excerpt saved to {content_path}")
            except OSError as e:
                logger.warning(f"Could not save page content: {e!r}")

    logger.info(f"Current URL: {diagnostics.page_url}")
    return diagnostics
