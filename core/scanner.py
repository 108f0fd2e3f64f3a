import asyncio
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from browser.session import PageSession
from core.detector import CompetitorDetector
from core.errors import NavigationError, NavigationTimeoutError, classify_error
from models.fingerprint import FingerprintCatalog
from models.scan import ScanOutcome, Target

logger = logging.getLogger(__name__)


class PageScanner:
    """Scans a single target in its own session and never raises for target faults."""

    def __init__(self, session_provider, detector: CompetitorDetector,
                 navigation_timeout_ms: int = 30000, settle_delay_ms: int = 3000):
        """
        Args:
            session_provider: Object whose ``acquire(target)`` is an async context
                manager yielding a ``PageSession``
            detector: Detector run once the page has settled
            navigation_timeout_ms: Limit for navigation plus network idle
            settle_delay_ms: Extra wait for deferred scripts after network idle
        """
        self.session_provider = session_provider
        self.detector = detector
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_delay_ms = settle_delay_ms

    async def scan(self, target: Target, catalog: FingerprintCatalog) -> ScanOutcome:
        logger.info(f"Scanning {target}")
        try:
            async with self.session_provider.acquire(target) as session:
                await self._navigate(session)
                if self.settle_delay_ms:
                    await asyncio.sleep(self.settle_delay_ms / 1000)
                competitor_outcomes = await self.detector.detect(session, catalog)
        except Exception as e:
            kind = classify_error(e)
            message = str(e) or e.__class__.__name__
            logger.error(f"Failed to scan {target.url} ({kind}): {message}")
            return ScanOutcome.failed(target, message=message, kind=kind)

        detected = sum(1 for c in competitor_outcomes if c.detected)
        logger.info(f"Finished {target.url}: {detected} of {len(competitor_outcomes)} competitors detected")
        return ScanOutcome.succeeded(target, competitor_outcomes)

    async def _navigate(self, session: PageSession) -> None:
        url = session.target.url
        logger.debug(f"Navigating to {url} (timeout: {self.navigation_timeout_ms}ms)")
        try:
            await session.page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(
                f"Navigation to {url} timed out after {self.navigation_timeout_ms}ms"
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e}") from e
        logger.debug(f"Loaded {url}, {len(session.network.requests)} requests captured")
