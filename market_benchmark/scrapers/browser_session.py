# market_benchmark/scrapers/browser_session.py

"""Headless browsing sessions with passive network interception.

A :class:`BrowserSession` is the blocking capability the acquisition
tiers drive: navigate, wait for an intercepted JSON response, wait for
the network to go idle, evaluate a script and read the rendered HTML.
:func:`open_browser_session` provides the Playwright-backed
implementation. Every session holds a slot of a bounded
:class:`SessionPool` and is torn down on every exit path.
"""

import logging
import random
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol

from playwright.sync_api import Page, Response, sync_playwright

from market_benchmark.config.settings import Settings

logger = logging.getLogger("market_benchmark.browser")

_POLL_INTERVAL_MS = 250


class SessionUnavailableError(RuntimeError):
    """A browsing session could not be created."""


class BrowserSession(Protocol):
    """Blocking browser capability consumed by the acquisition tiers."""

    def navigate(self, url: str, timeout: float) -> None: ...

    def wait_for_response(
        self,
        url_predicate: Callable[[str], bool],
        timeout: float,
    ) -> Any | None: ...

    def wait_for_idle(self, timeout: float) -> None: ...

    def evaluate(self, script: str) -> Any: ...

    def content(self) -> str: ...


SessionFactory = Callable[[], AbstractContextManager[BrowserSession]]


class SessionPool:
    """Caps the number of simultaneously open browsing sessions.

    Each session is a browser process, so concurrent analyses share
    one process-wide pool.
    """

    def __init__(
        self,
        size: int = Settings.MAX_BROWSER_SESSIONS,
        acquire_timeout: float = Settings.SESSION_ACQUIRE_TIMEOUT,
    ) -> None:
        if size < 1:
            msg = f"Session pool size must be >= 1, got {size}"
            raise ValueError(msg)
        self.size = size
        self.acquire_timeout = acquire_timeout
        self._slots = threading.BoundedSemaphore(size)

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold one pool slot for the duration of the block."""
        if not self._slots.acquire(timeout=self.acquire_timeout):
            msg = (
                f"No browser session slot free after "
                f"{self.acquire_timeout:.0f}s (pool size {self.size})"
            )
            raise SessionUnavailableError(msg)
        try:
            yield
        finally:
            self._slots.release()


DEFAULT_POOL = SessionPool()


class PlaywrightSession:
    """:class:`BrowserSession` over a Playwright sync ``Page``.

    Responses are recorded by a listener registered at construction,
    i.e. before any navigation, and parsed lazily while waiting.
    """

    def __init__(self, page: Page) -> None:
        self._page = page
        self._captured: list[Response] = []
        page.on("response", self._captured.append)

    def navigate(self, url: str, timeout: float) -> None:
        """Open *url* and wait for the DOM to load."""
        logger.info("Navigating to %s", url)
        self._page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=timeout * 1000,
        )

    def _parse(self, response: Response) -> Any | None:
        try:
            return response.json()
        except Exception as exc:
            logger.debug(
                "Intercepted response from %s is not JSON: %s",
                response.url,
                exc,
            )
            return None

    def wait_for_response(
        self,
        url_predicate: Callable[[str], bool],
        timeout: float,
    ) -> Any | None:
        """Return the first captured JSON body whose URL matches.

        Polls the capture buffer until *timeout* seconds elapse and
        returns ``None`` if nothing matching arrived.
        """
        deadline = time.monotonic() + timeout
        inspected = 0
        while True:
            while inspected < len(self._captured):
                response = self._captured[inspected]
                inspected += 1
                if response.status != 200:
                    continue
                if not url_predicate(response.url):
                    continue
                payload = self._parse(response)
                if payload is not None:
                    logger.debug(
                        "Intercepted API response from %s",
                        response.url,
                    )
                    return payload
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            self._page.wait_for_timeout(
                min(_POLL_INTERVAL_MS, remaining * 1000)
            )

    def wait_for_idle(self, timeout: float) -> None:
        """Block until the network has been idle, up to *timeout*."""
        self._page.wait_for_load_state(
            "networkidle", timeout=timeout * 1000
        )

    def evaluate(self, script: str) -> Any:
        """Evaluate *script* in the page and return its result."""
        return self._page.evaluate(script)

    def content(self) -> str:
        """Serialised HTML of the rendered page."""
        return self._page.content()


@contextmanager
def open_browser_session(
    pool: SessionPool = DEFAULT_POOL,
) -> Iterator[PlaywrightSession]:
    """Launch a headless Chromium session with a rotated identity.

    Raises :class:`SessionUnavailableError` when no pool slot frees up
    or the browser cannot be launched. The browser and the Playwright
    driver are closed before the context exits, whatever happens
    inside the block.
    """
    with pool.slot():
        try:
            manager = sync_playwright().start()
        except Exception as exc:
            msg = f"Playwright driver failed to start: {exc}"
            raise SessionUnavailableError(msg) from exc
        try:
            try:
                browser = manager.chromium.launch(
                    headless=Settings.HEADLESS,
                    args=Settings.BROWSER_ARGS,
                )
            except Exception as exc:
                msg = f"Browser launch failed: {exc}"
                raise SessionUnavailableError(msg) from exc
            try:
                user_agent = random.choice(Settings.USER_AGENTS)
                context = browser.new_context(
                    user_agent=user_agent,
                    viewport={
                        "width": Settings.VIEWPORT["width"],
                        "height": Settings.VIEWPORT["height"],
                    },
                    locale=Settings.LOCALE,
                    timezone_id=Settings.TIMEZONE,
                    extra_http_headers={
                        "Accept-Language": (
                            Settings.DEFAULT_HEADERS["Accept-Language"]
                        ),
                    },
                )
                page = context.new_page()
                logger.debug("Browser session opened (ua=%s)", user_agent)
                yield PlaywrightSession(page)
            finally:
                browser.close()
                logger.debug("Browser session closed")
        finally:
            manager.stop()
