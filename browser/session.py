"""Browser sessions for page scans.

A session is one Playwright page, its browser context and the network
requests recorded on it. Two providers hand out sessions:

- ``IsolatedSessionProvider`` launches a fresh browser per target, so
  cookies and window state can never leak between targets (the default).
- ``PooledSessionProvider`` keeps one browser and a bounded pool of contexts
  reused across targets. Cheaper, but state can carry over between targets.

Both attach network capture before returning the session, so requests made
during navigation and redirects are recorded.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from core.errors import SessionError
from models.scan import Target

logger = logging.getLogger(__name__)

DEFAULT_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
]


@dataclass(frozen=True)
class CapturedRequest:
    url: str
    method: str
    resource_type: str


class NetworkCapture:
    """Records outbound requests issued by one page."""

    def __init__(self):
        self._requests: List[CapturedRequest] = []

    def attach(self, page: Page) -> None:
        page.on("request", self._on_request)

    def detach(self, page: Page) -> None:
        page.remove_listener("request", self._on_request)

    def _on_request(self, request) -> None:
        self._requests.append(
            CapturedRequest(url=request.url, method=request.method, resource_type=request.resource_type)
        )

    @property
    def requests(self) -> Tuple[CapturedRequest, ...]:
        return tuple(self._requests)

    def unique_urls(self, resource_type: Optional[str] = None) -> List[str]:
        """Distinct request URLs in first-seen order, optionally of one resource type."""
        seen: Dict[str, None] = {}
        for request in self._requests:
            if resource_type is None or request.resource_type == resource_type:
                seen.setdefault(request.url, None)
        return list(seen)


@dataclass
class PageSession:
    """Everything extractors need to observe one loaded page."""
    target: Target
    page: Page
    context: BrowserContext
    network: NetworkCapture = field(default_factory=NetworkCapture)

    async def cookies(self) -> List[Dict[str, Any]]:
        return await self.context.cookies()

    def is_closed(self) -> bool:
        return self.page.is_closed()


async def _start_playwright() -> Playwright:
    try:
        return await async_playwright().start()
    except PlaywrightError as e:
        raise SessionError(f"Failed to start Playwright: {e}") from e


async def _close_quietly(resource, label: str) -> None:
    try:
        await resource.close()
    except PlaywrightError as e:
        logger.warning(f"Error closing {label}: {e}")


class IsolatedSessionProvider:
    """Launches a dedicated browser for every acquired session."""

    def __init__(self, headless: bool = True, user_agent: Optional[str] = None,
                 launch_args: Optional[List[str]] = None):
        self.headless = headless
        self.user_agent = user_agent
        self.launch_args = launch_args if launch_args is not None else list(DEFAULT_LAUNCH_ARGS)
        self.playwright_instance: Optional[Playwright] = None

    async def start(self) -> None:
        if self.playwright_instance is None:
            self.playwright_instance = await _start_playwright()
            logger.info("Playwright started (isolated sessions)")

    async def close(self) -> None:
        if self.playwright_instance is not None:
            try:
                await self.playwright_instance.stop()
                logger.info("Playwright stopped")
            except PlaywrightError as e:
                logger.warning(f"Error stopping Playwright: {e}")
            finally:
                self.playwright_instance = None

    async def _open(self, target: Target) -> Tuple[Browser, PageSession]:
        if self.playwright_instance is None:
            raise SessionError("Session provider not started. Call start() first.")
        try:
            browser = await self.playwright_instance.chromium.launch(
                headless=self.headless, args=self.launch_args
            )
        except PlaywrightError as e:
            raise SessionError(f"Failed to launch browser: {e}") from e
        try:
            context = await browser.new_context(user_agent=self.user_agent)
            page = await context.new_page()
        except PlaywrightError as e:
            await _close_quietly(browser, "browser")
            raise SessionError(f"Failed to open browser context: {e}") from e

        session = PageSession(target=target, page=page, context=context)
        session.network.attach(page)
        return browser, session

    @asynccontextmanager
    async def acquire(self, target: Target) -> AsyncIterator[PageSession]:
        """Yield a session owned exclusively by ``target``; the browser is closed on exit."""
        browser, session = await self._open(target)
        logger.debug(f"Opened isolated browser for {target.url}")
        try:
            yield session
        finally:
            await _close_quietly(browser, f"browser for {target.url}")
            logger.debug(f"Closed isolated browser for {target.url}")


class PooledSessionProvider:
    """
    Shares one browser and reuses a bounded pool of browser contexts.

    Each acquired session gets a fresh page in an idle context. Contexts are
    replaced after ``max_uses_per_context`` pages or when they break. Cookies
    and storage persist within a context between targets, so this mode has to
    be opted into explicitly.
    """

    def __init__(self, pool_size: int = 10, headless: bool = True, user_agent: Optional[str] = None,
                 max_uses_per_context: int = 50, launch_args: Optional[List[str]] = None):
        self.pool_size = pool_size
        self.headless = headless
        self.user_agent = user_agent
        self.max_uses = max_uses_per_context
        self.launch_args = launch_args if launch_args is not None else list(DEFAULT_LAUNCH_ARGS)
        self.lock = asyncio.Lock()

        self.playwright_instance: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self._idle: "asyncio.Queue[Optional[BrowserContext]]" = asyncio.Queue()
        self._created = 0
        self.usage_counts: Dict[int, int] = {}

        logger.info(f"PooledSessionProvider initialized: {pool_size} contexts, "
                    f"max {max_uses_per_context} uses per context")

    async def start(self) -> None:
        """Start the Playwright driver; the shared browser is launched on first checkout."""
        async with self.lock:
            if self.playwright_instance is None:
                self.playwright_instance = await _start_playwright()
                logger.info("Playwright started (pooled sessions)")

    async def _ensure_browser(self) -> Browser:
        # Caller holds self.lock
        if self.browser is not None and self.browser.is_connected():
            return self.browser
        if self.playwright_instance is None:
            raise SessionError("Session provider not started. Call start() first.")
        try:
            self.browser = await self.playwright_instance.chromium.launch(
                headless=self.headless, args=self.launch_args
            )
        except PlaywrightError as e:
            self.browser = None
            raise SessionError(f"Failed to launch shared browser: {e}") from e
        logger.info("Shared browser launched")
        return self.browser

    async def _new_context(self, browser: Browser) -> BrowserContext:
        # Caller holds self.lock
        self._created += 1
        try:
            return await browser.new_context(user_agent=self.user_agent)
        except PlaywrightError as e:
            self._created -= 1
            raise SessionError(f"Failed to create pooled context: {e}") from e

    async def close(self) -> None:
        async with self.lock:
            while not self._idle.empty():
                context = self._idle.get_nowait()
                if context is not None:
                    await _close_quietly(context, "pooled context")
            self._created = 0
            self.usage_counts.clear()
            if self.browser is not None:
                await _close_quietly(self.browser, "shared browser")
                self.browser = None
            if self.playwright_instance is not None:
                try:
                    await self.playwright_instance.stop()
                except PlaywrightError as e:
                    logger.warning(f"Error stopping Playwright: {e}")
                finally:
                    self.playwright_instance = None
            logger.info("Session pool cleanup complete")

    async def _checkout(self) -> BrowserContext:
        async with self.lock:
            browser = await self._ensure_browser()
            if self._idle.empty() and self._created < self.pool_size:
                return await self._new_context(browser)

        context = await self._idle.get()
        if context is not None:
            return context

        # None marks a pool slot freed by a context that could not be replaced
        async with self.lock:
            try:
                return await self._new_context(await self._ensure_browser())
            except SessionError:
                self._idle.put_nowait(None)
                raise

    async def _checkin(self, context: BrowserContext, healthy: bool) -> None:
        key = id(context)
        uses = self.usage_counts.get(key, 0) + 1
        if healthy and uses < self.max_uses:
            self.usage_counts[key] = uses
            self._idle.put_nowait(context)
            return

        logger.debug(f"Retiring pooled context after {uses} uses (healthy={healthy})")
        self.usage_counts.pop(key, None)
        await _close_quietly(context, "pooled context")
        # Replace the retired context so callers waiting on the pool wake up
        async with self.lock:
            self._created -= 1
            try:
                self._idle.put_nowait(await self._new_context(await self._ensure_browser()))
            except SessionError as e:
                logger.warning(f"Could not replace pooled context: {e}")
                self._idle.put_nowait(None)

    @asynccontextmanager
    async def acquire(self, target: Target) -> AsyncIterator[PageSession]:
        context = await self._checkout()
        try:
            page = await context.new_page()
        except PlaywrightError as e:
            await self._checkin(context, healthy=False)
            raise SessionError(f"Failed to open page in pooled context: {e}") from e

        session = PageSession(target=target, page=page, context=context)
        session.network.attach(page)
        healthy = True
        try:
            yield session
        except BaseException:
            healthy = not page.is_closed()
            raise
        finally:
            session.network.detach(page)
            if not page.is_closed():
                await _close_quietly(page, f"page for {target.url}")
            await self._checkin(context, healthy)
