"""Headless browser helpers for capturing rendered page elements.

Playwright errors are classified once, in ``classify_error``, into
transient and fatal ``AutomationError``s; ``with_browser_page`` retries
only the transient ones.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence, TypeVar

from playwright.sync_api import Error as PlaywrightError, sync_playwright

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
TRANSIENT_ERROR_NAMES = {"TimeoutError", "TargetClosedError"}

T = TypeVar("T")


class AutomationError(RuntimeError):
    def __init__(self, message: str, *, transient: bool):
        super().__init__(message)
        self.transient = transient


class BrowserUnavailableError(AutomationError):
    def __init__(self, message: str):
        super().__init__(message, transient=False)


def classify_error(exc: BaseException) -> AutomationError:
    if isinstance(exc, AutomationError):
        return exc
    name = getattr(exc, "name", None) or type(exc).__name__
    transient = name in TRANSIENT_ERROR_NAMES
    error = AutomationError(f"{name}: {exc}", transient=transient)
    error.__cause__ = exc
    return error


@contextmanager
def playwright_page(url: str, headless: bool = True) -> Iterator[Any]:
    with sync_playwright() as playwright:
        try:
            browser = playwright.chromium.launch(headless=headless)
        except PlaywrightError as exc:
            raise BrowserUnavailableError(f"Could not launch headless Chromium: {exc}") from exc
        try:
            page = browser.new_page()
            try:
                page.goto(url)
            except PlaywrightError as exc:
                raise classify_error(exc) from exc
            yield page
        finally:
            browser.close()


PageLauncher = Callable[[str], Any]


def with_browser_page(
    url: str,
    fn: Callable[[Any], T],
    *,
    launcher: PageLauncher = playwright_page,
    max_attempts: int = MAX_ATTEMPTS,
) -> T:
    last_error: AutomationError | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            with launcher(url) as page:
                return fn(page)
        except BrowserUnavailableError:
            raise
        except Exception as exc:
            error = classify_error(exc)
            if not error.transient:
                if error is exc:
                    raise
                raise error from exc
            last_error = error
            logger.warning("Browser automation failed (%s), retrying %d/%d", error, attempt, max_attempts)
    raise AutomationError(
        f"Browser automation for {url} failed after {max_attempts} attempts", transient=False
    ) from last_error


def extract_images_from_elements(
    url: str,
    selector: str,
    filenames: Sequence[Path],
    *,
    launcher: PageLauncher = playwright_page,
) -> bool:
    def capture(page: Any) -> None:
        elements = page.query_selector_all(selector)
        if len(elements) != len(filenames):
            raise AutomationError(
                f"extract_images_from_elements was given {len(filenames)} filenames, "
                f"but selector {selector!r} yielded {len(elements)} elements.",
                transient=False,
            )
        for element, filename in zip(elements, filenames):
            element.screenshot(path=str(filename))

    try:
        with_browser_page(url, capture, launcher=launcher)
    except BrowserUnavailableError as exc:
        logger.warning("Screenshotting of embedded web content disabled: %s", exc)
        return False
    return True


def extract_html_from_elements(url: str, selector: str, *, launcher: PageLauncher = playwright_page) -> list[str]:
    return with_browser_page(
        url,
        lambda page: page.eval_on_selector_all(selector, "nodes => nodes.map(n => n.outerHTML)"),
        launcher=launcher,
    )
