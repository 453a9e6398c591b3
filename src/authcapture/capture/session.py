"""Playwright-backed browser session used by the capture process.

Only this module talks to Playwright. The runner depends on the small
:class:`BrowserSession` surface (``open`` and ``storage_state``), so tests can
substitute a fake session factory without a browser.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from playwright.sync_api import BrowserContext, Error as PlaywrightError, sync_playwright

from authcapture.exceptions import CaptureError


class BrowserSession:
    """Thin wrapper around a Playwright browser context."""

    def __init__(self, context: BrowserContext) -> None:
        self._context = context

    def open(self, url: str, timeout_ms: int) -> None:
        """Open *url* in a new page and wait for ``domcontentloaded``."""
        page = self._context.new_page()
        try:
            page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")
        except PlaywrightError as exc:
            raise CaptureError(f"Failed to open {url}: {exc}") from exc

    def storage_state(self) -> dict[str, Any]:
        """Return the context's current cookies and per-origin storage."""
        try:
            return self._context.storage_state()
        except PlaywrightError as exc:
            raise CaptureError(f"Failed to read session state: {exc}") from exc


@contextmanager
def open_browser_session(
    executable_path: Path,
    storage_state: Optional[dict[str, Any]] = None,
    headless: bool = False,
) -> Iterator[BrowserSession]:
    """Launch Firefox from *executable_path* and yield a session.

    Args:
        executable_path: The browser binary to launch.
        storage_state: Optional cookies/origins to seed the context with.
        headless: Run without a visible window.

    Raises:
        CaptureError: If the browser cannot be launched.
    """
    with sync_playwright() as playwright:
        try:
            browser = playwright.firefox.launch(
                executable_path=str(executable_path),
                headless=headless,
            )
        except PlaywrightError as exc:
            raise CaptureError(f"Failed to launch browser: {exc}") from exc
        try:
            context = browser.new_context(storage_state=storage_state)
            try:
                yield BrowserSession(context)
            finally:
                context.close()
        finally:
            browser.close()
