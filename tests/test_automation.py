from contextlib import contextmanager
from pathlib import Path

import pytest

from sitelist.automation import (
    MAX_ATTEMPTS,
    AutomationError,
    BrowserUnavailableError,
    classify_error,
    extract_html_from_elements,
    extract_images_from_elements,
    with_browser_page,
)


class FakeTimeoutError(Exception):
    name = "TimeoutError"


class FakeElement:
    def __init__(self, html: str):
        self.html = html

    def screenshot(self, path: str):
        Path(path).write_bytes(b"png")


class FakePage:
    def __init__(self, count: int = 2):
        self.elements = [FakeElement(f"<div>{i}</div>") for i in range(count)]

    def query_selector_all(self, selector):
        return self.elements

    def eval_on_selector_all(self, selector, script):
        return [element.html for element in self.elements]


def flaky_launcher(failures: int, error=FakeTimeoutError):
    calls = []

    @contextmanager
    def launcher(url):
        calls.append(url)
        if len(calls) <= failures:
            raise error("page went away")
        yield FakePage()

    return launcher, calls


def test_classify_error_uses_error_name():
    assert classify_error(FakeTimeoutError("slow")).transient is True
    assert classify_error(ValueError("bad")).transient is False
    error = AutomationError("kept", transient=True)
    assert classify_error(error) is error


def test_transient_errors_are_retried():
    launcher, calls = flaky_launcher(failures=2)

    assert with_browser_page("http://x", lambda page: "done", launcher=launcher) == "done"
    assert len(calls) == 3


def test_retries_stop_after_max_attempts():
    launcher, calls = flaky_launcher(failures=100)

    with pytest.raises(AutomationError) as excinfo:
        with_browser_page("http://x", lambda page: "done", launcher=launcher)

    assert len(calls) == MAX_ATTEMPTS
    assert excinfo.value.transient is False
    assert "failed after 5 attempts" in str(excinfo.value)


def test_fatal_errors_are_not_retried():
    launcher, calls = flaky_launcher(failures=1, error=ValueError)

    with pytest.raises(AutomationError) as excinfo:
        with_browser_page("http://x", lambda page: "done", launcher=launcher)

    assert len(calls) == 1
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_screenshots_written_per_element(tmp_path: Path):
    launcher, _ = flaky_launcher(failures=0)
    files = [tmp_path / "a.png", tmp_path / "b.png"]

    assert extract_images_from_elements("http://x", ".plot", files, launcher=launcher) is True
    assert all(path.read_bytes() == b"png" for path in files)


def test_screenshot_count_mismatch_is_fatal(tmp_path: Path):
    launcher, calls = flaky_launcher(failures=0)

    with pytest.raises(AutomationError, match="3 filenames"):
        extract_images_from_elements("http://x", ".plot", [tmp_path / f"{i}.png" for i in range(3)], launcher=launcher)
    assert len(calls) == 1


def test_missing_browser_disables_screenshots(tmp_path: Path, caplog):
    @contextmanager
    def launcher(url):
        raise BrowserUnavailableError("no chromium")
        yield

    with caplog.at_level("WARNING", logger="sitelist.automation"):
        assert extract_images_from_elements("http://x", ".plot", [tmp_path / "a.png"], launcher=launcher) is False
    assert "no chromium" in caplog.text


def test_extract_html_from_elements():
    launcher, _ = flaky_launcher(failures=0)
    assert extract_html_from_elements("http://x", "div", launcher=launcher) == ["<div>0</div>", "<div>1</div>"]
