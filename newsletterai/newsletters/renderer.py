"""
Artifact renderer: newsletter markup -> fixed-page PDF via headless Chrome.

Each render gets its own short-lived driver (no shared browser to leak or
corrupt), and at most RENDER_MAX_CONCURRENCY renders run at once. The driver
is always quit, whether the render succeeds, fails or times out.
"""

from __future__ import annotations

import asyncio
import base64
import os
import tempfile
import time
from pathlib import Path
from typing import Protocol

from newsletterai.config import (
    ARTIFACT_MEDIA_TYPE,
    CHROME_BINARY,
    RENDER_MAX_CONCURRENCY,
    RENDER_TIMEOUT_SECONDS,
)
from newsletterai.newsletters.errors import RenderError, RenderTimeoutError
from newsletterai.newsletters.models import Artifact
from newsletterai.observability.logging import get_logger
from newsletterai.observability.telemetry import counter, time_block

logger = get_logger(__name__)

# A4 in centimetres (selenium PrintOptions units)
A4_WIDTH_CM = 21.0
A4_HEIGHT_CM = 29.7

_IMAGES_LOADED_JS = (
    "return Array.from(document.images).every(function (img) { return img.complete; });"
)


class ArtifactRenderer(Protocol):
    async def render(self, markup: str) -> Artifact: ...


def _create_driver(page_load_timeout: float):
    from selenium import webdriver
    from selenium.webdriver.chrome.options import Options

    chrome_options = Options()
    chrome_options.add_argument("--headless=new")
    chrome_options.add_argument("--no-sandbox")
    chrome_options.add_argument("--disable-dev-shm-usage")
    chrome_options.add_argument("--disable-gpu")
    chrome_options.add_argument("--disable-extensions")
    chrome_options.add_argument("--log-level=3")
    if CHROME_BINARY:
        chrome_options.binary_location = CHROME_BINARY

    driver = webdriver.Chrome(options=chrome_options)
    driver.set_page_load_timeout(page_load_timeout)
    driver.set_script_timeout(page_load_timeout)
    return driver


def _print_to_pdf(markup: str, timeout: float) -> bytes:
    """Blocking render; runs in a worker thread."""
    from selenium.common.exceptions import TimeoutException, WebDriverException
    from selenium.webdriver.common.print_page_options import PrintOptions
    from selenium.webdriver.support.ui import WebDriverWait

    deadline = time.monotonic() + timeout

    fd, html_path = tempfile.mkstemp(suffix=".html", prefix="newsletter_")
    driver = None
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(markup)

        driver = _create_driver(timeout)
        driver.get(Path(html_path).as_uri())

        # Page and every <img> (flyer, article images) must be loaded before printing
        WebDriverWait(driver, max(deadline - time.monotonic(), 0.1)).until(
            lambda d: d.execute_script("return document.readyState") == "complete"
        )
        WebDriverWait(driver, max(deadline - time.monotonic(), 0.1)).until(
            lambda d: d.execute_script(_IMAGES_LOADED_JS)
        )

        print_options = PrintOptions()
        print_options.page_width = A4_WIDTH_CM
        print_options.page_height = A4_HEIGHT_CM
        print_options.background = True

        encoded = driver.print_page(print_options)
        return base64.b64decode(encoded)
    except TimeoutException as e:
        raise RenderTimeoutError(f"Render timed out after {timeout:.0f}s") from e
    except WebDriverException as e:
        raise RenderError(f"Rendering engine failed: {e.msg or e}") from e
    finally:
        if driver is not None:
            try:
                driver.quit()
            except Exception as e:
                logger.warning("Failed to quit render driver: %s", e)
        try:
            os.unlink(html_path)
        except OSError:
            pass


class ChromePdfRenderer:
    """ArtifactRenderer backed by headless Chrome (selenium)."""

    def __init__(
        self,
        timeout_seconds: float = RENDER_TIMEOUT_SECONDS,
        max_concurrency: int = RENDER_MAX_CONCURRENCY,
        grace_seconds: float = 5.0,
    ):
        self.timeout_seconds = timeout_seconds
        self.grace_seconds = grace_seconds
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    def _release_abandoned(self, task: asyncio.Future) -> None:
        """Free the slot of a timed-out render once its worker thread exits."""
        self._semaphore.release()
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Abandoned render finished with error: %s", task.exception())
        else:
            logger.info("Abandoned render finished; slot released")

    async def render(self, markup: str) -> Artifact:
        """
        Render markup to an A4 PDF with backgrounds printed.

        A render that overruns its timeout keeps its concurrency slot until
        the worker thread (and its Chrome process) has actually exited.

        Raises:
            RenderTimeoutError: render exceeded timeout_seconds
            RenderError: engine could not start or print, or produced no bytes
        """
        await self._semaphore.acquire()
        task = asyncio.ensure_future(
            asyncio.to_thread(_print_to_pdf, markup, self.timeout_seconds)
        )
        try:
            with time_block("render"):
                try:
                    data = await asyncio.wait_for(
                        asyncio.shield(task),
                        timeout=self.timeout_seconds + self.grace_seconds,
                    )
                except TimeoutError as e:
                    counter("render.timeout")
                    raise RenderTimeoutError(
                        f"Render timed out after {self.timeout_seconds:.0f}s"
                    ) from e
                except RenderError:
                    counter("render.failed")
                    raise
                except Exception as e:
                    counter("render.failed")
                    logger.error("Render failed: %s", e)
                    raise RenderError(f"Rendering engine failed: {e}") from e
        finally:
            if task.done():
                self._semaphore.release()
            else:
                logger.warning("Render worker still running after timeout; holding its slot")
                task.add_done_callback(self._release_abandoned)

        if not data:
            counter("render.failed")
            raise RenderError("Rendering engine produced an empty document")

        counter("render.succeeded")
        logger.info("Rendered newsletter artifact (%d bytes)", len(data))
        return Artifact(data=data, media_type=ARTIFACT_MEDIA_TYPE)


_renderer: ChromePdfRenderer | None = None


def get_renderer() -> ChromePdfRenderer:
    """Get singleton renderer instance."""
    global _renderer
    if _renderer is None:
        _renderer = ChromePdfRenderer()
    return _renderer
