import asyncio
import logging
from typing import Callable, Optional, Sequence, Set

from browser.session import IsolatedSessionProvider, PooledSessionProvider
from core.detector import CompetitorDetector
from core.errors import SessionError
from core.orchestrator import ScanOrchestrator
from core.scanner import PageScanner
from core.settings import ScanSettings
from models.fingerprint import FingerprintCatalog
from models.scan import BatchSummary, ScanOutcome, Target


def build_session_provider(settings: ScanSettings):
    """Isolated browsers by default; a shared context pool only when asked for."""
    if settings.session_mode == "pooled":
        return PooledSessionProvider(
            pool_size=settings.concurrency_limit,
            headless=settings.headless,
            user_agent=settings.user_agent,
        )
    return IsolatedSessionProvider(headless=settings.headless, user_agent=settings.user_agent)


class Engine:
    def __init__(self, settings: Optional[ScanSettings] = None, session_provider=None,
                 exclude_extractors: Set[str] = None,
                 should_continue: Optional[Callable[[], bool]] = None):
        """Wire the scanning pipeline together from run settings.

        Args:
            settings: Run parameters; defaults to ``ScanSettings()``
            session_provider: Overrides the provider picked from ``settings.session_mode``
            exclude_extractors: Fingerprint fields to skip (e.g. {'classes_list'})
            should_continue: Checked between chunks to stop a batch early
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings or ScanSettings()
        self.session_provider = session_provider or build_session_provider(self.settings)

        self.detector = CompetitorDetector(
            extractor_timeout=self.settings.extractor_timeout_s,
            exclude_extractors=exclude_extractors,
        )
        self.logger.info(f"Initialized {len(self.detector.extractors)} extractors")
        if exclude_extractors:
            self.logger.info(f"Excluded extractors: {', '.join(sorted(exclude_extractors))}")

        self.scanner = PageScanner(
            self.session_provider,
            self.detector,
            navigation_timeout_ms=self.settings.navigation_timeout_ms,
            settle_delay_ms=self.settings.settle_delay_ms,
        )
        self.orchestrator = ScanOrchestrator(
            self.scanner,
            concurrency_limit=self.settings.concurrency_limit,
            should_continue=should_continue,
        )

    async def run(self, targets: Sequence[Target], catalog: FingerprintCatalog) -> BatchSummary:
        """Scan every target against the catalog, starting and stopping the browser layer."""
        self.logger.info(
            f"Browser config: headless={self.settings.headless}, "
            f"timeout={self.settings.navigation_timeout_ms}ms, batch={self.settings.concurrency_limit}, "
            f"sessions={self.settings.session_mode}"
        )
        try:
            await self.session_provider.start()
        except SessionError as e:
            self.logger.error(f"Browser layer failed to start: {e}")
            return BatchSummary.from_outcomes(
                ScanOutcome.failed(target, message=str(e), kind=e.kind) for target in targets
            )

        try:
            return await self.orchestrator.run_batch(targets, catalog)
        finally:
            await self.session_provider.close()


# Example usage (for testing)
async def main():
    from models.fingerprint import FingerprintDefinition
    from types import MappingProxyType

    catalog = MappingProxyType({
        "algolia": FingerprintDefinition(
            api_requests_urls=("https://insights.algolia.io",),
            window_variables=("algolia", "algoliasearch"),
        )
    })
    targets = [Target(customer="Example", page_label="Homepage", url="https://www.example.com")]

    summary = await Engine().run(targets, catalog)
    for outcome in summary.outcomes:
        print(f"{outcome.target}: success={outcome.success}")
        for competitor in outcome.competitor_outcomes or ():
            print(f"  {competitor.competitor_name}: {competitor.confidence}% ({len(competitor.matches)} matches)")


if __name__ == "__main__":
    asyncio.run(main())
