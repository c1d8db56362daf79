"""Tests for the headless Chrome renderer (driver replaced by fakes)"""

from __future__ import annotations

import asyncio
import base64
import threading
import time

import pytest
from selenium.common.exceptions import WebDriverException

from newsletterai.newsletters import renderer as renderer_module
from newsletterai.newsletters.errors import RenderError, RenderTimeoutError
from newsletterai.newsletters.renderer import ChromePdfRenderer, _print_to_pdf

MARKUP = "<!DOCTYPE html><html><body><p>hello</p></body></html>"


class FakeDriver:
    def __init__(self, print_error: Exception | None = None):
        self.print_error = print_error
        self.loaded: list[str] = []
        self.print_options = None
        self.quit_called = False

    def get(self, url):
        self.loaded.append(url)

    def execute_script(self, script):
        if "readyState" in script:
            return "complete"
        return True

    def print_page(self, print_options):
        if self.print_error:
            raise self.print_error
        self.print_options = print_options
        return base64.b64encode(b"%PDF-1.7 rendered").decode("ascii")

    def quit(self):
        self.quit_called = True


def test_print_to_pdf_loads_markup_and_prints_a4(monkeypatch):
    driver = FakeDriver()
    monkeypatch.setattr(renderer_module, "_create_driver", lambda timeout: driver)

    data = _print_to_pdf(MARKUP, timeout=5)

    assert data == b"%PDF-1.7 rendered"
    assert driver.loaded[0].startswith("file://")
    assert driver.print_options.background is True
    assert driver.print_options.page_width == pytest.approx(21.0)
    assert driver.print_options.page_height == pytest.approx(29.7)
    assert driver.quit_called


def test_print_to_pdf_quits_driver_on_failure(monkeypatch):
    driver = FakeDriver(print_error=WebDriverException("print failed"))
    monkeypatch.setattr(renderer_module, "_create_driver", lambda timeout: driver)

    with pytest.raises(RenderError):
        _print_to_pdf(MARKUP, timeout=5)

    assert driver.quit_called


def test_driver_start_failure_is_render_error(monkeypatch):
    def no_chrome(timeout):
        raise WebDriverException("chrome not reachable")

    monkeypatch.setattr(renderer_module, "_create_driver", no_chrome)

    with pytest.raises(RenderError):
        _print_to_pdf(MARKUP, timeout=5)


def test_render_returns_pdf_artifact(monkeypatch):
    monkeypatch.setattr(renderer_module, "_print_to_pdf", lambda markup, timeout: b"%PDF-1.7")

    artifact = asyncio.run(ChromePdfRenderer().render(MARKUP))

    assert artifact.data == b"%PDF-1.7"
    assert artifact.media_type == "application/pdf"


def test_empty_output_is_render_error(monkeypatch):
    monkeypatch.setattr(renderer_module, "_print_to_pdf", lambda markup, timeout: b"")

    with pytest.raises(RenderError):
        asyncio.run(ChromePdfRenderer().render(MARKUP))


def test_unexpected_failure_is_render_error(monkeypatch):
    def explode(markup, timeout):
        raise OSError("no space left on device")

    monkeypatch.setattr(renderer_module, "_print_to_pdf", explode)

    with pytest.raises(RenderError):
        asyncio.run(ChromePdfRenderer().render(MARKUP))


def test_render_timeout_propagates(monkeypatch):
    def slow(markup, timeout):
        raise RenderTimeoutError("Render timed out after 1s")

    monkeypatch.setattr(renderer_module, "_print_to_pdf", slow)

    with pytest.raises(RenderTimeoutError):
        asyncio.run(ChromePdfRenderer().render(MARKUP))


def test_concurrent_renders_are_bounded(monkeypatch):
    lock = threading.Lock()
    active = [0]
    peak = [0]

    def tracked(markup, timeout):
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        time.sleep(0.05)
        with lock:
            active[0] -= 1
        return b"%PDF"

    monkeypatch.setattr(renderer_module, "_print_to_pdf", tracked)

    async def render_many():
        renderer = ChromePdfRenderer(max_concurrency=2)
        return await asyncio.gather(*(renderer.render(MARKUP) for _ in range(5)))

    results = asyncio.run(render_many())

    assert len(results) == 5
    assert peak[0] <= 2


def test_timed_out_render_keeps_its_slot_until_the_worker_exits(monkeypatch):
    unblock = threading.Event()
    lock = threading.Lock()
    active = [0]
    peak = [0]

    def stuck(markup, timeout):
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        try:
            unblock.wait(5)
            return b"%PDF"
        finally:
            with lock:
                active[0] -= 1

    monkeypatch.setattr(renderer_module, "_print_to_pdf", stuck)

    async def scenario():
        renderer = ChromePdfRenderer(timeout_seconds=0.2, max_concurrency=1, grace_seconds=0.2)

        with pytest.raises(RenderTimeoutError):
            await renderer.render(MARKUP)
        held_after_timeout = renderer._semaphore.locked()

        second = asyncio.ensure_future(renderer.render(MARKUP))
        await asyncio.sleep(0.1)
        second_waiting = not second.done()

        unblock.set()
        artifact = await asyncio.wait_for(second, timeout=5)
        return held_after_timeout, second_waiting, artifact

    held_after_timeout, second_waiting, artifact = asyncio.run(scenario())

    assert held_after_timeout
    assert second_waiting
    assert artifact.data == b"%PDF"
    assert peak[0] == 1
