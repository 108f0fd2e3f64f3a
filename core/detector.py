import asyncio
import logging
from typing import Dict, List, Optional, Set

from browser.session import PageSession
from core.confidence import ConfidenceScorer
from core.errors import SessionError
from core.extractor_registry import ExtractorRegistry
from models.detection import CompetitorOutcome, RawMatch
from models.fingerprint import FingerprintCatalog, FingerprintDefinition

# Import all extractors to trigger @ExtractorRegistry.register decorators
import extractors.scripts
import extractors.window_variables
import extractors.classes
import extractors.data_attributes
import extractors.api_requests
import extractors.cookies
import extractors.head_tags

logger = logging.getLogger(__name__)

DEFAULT_EXTRACTOR_TIMEOUT = 10.0  # seconds per extractor call


class CompetitorDetector:
    """Runs the extractors for every fingerprint of a catalog against one loaded page."""

    def __init__(self, extractors: Optional[Dict[str, object]] = None,
                 extractor_timeout: float = DEFAULT_EXTRACTOR_TIMEOUT,
                 exclude_extractors: Set[str] = None):
        """
        Args:
            extractors: Extractor instances keyed by the fingerprint field they consume;
                defaults to every registered extractor
            extractor_timeout: Seconds before a single extractor call is abandoned
            exclude_extractors: Fingerprint fields to skip (e.g. {'classes_list'})
        """
        if extractors is None:
            extractors = ExtractorRegistry.instantiate_all(exclude=exclude_extractors)
        self.extractors = extractors
        self.extractor_timeout = extractor_timeout

    async def detect(self, session: PageSession, catalog: FingerprintCatalog) -> List[CompetitorOutcome]:
        """Evaluate every competitor concurrently; outcomes come back in catalog order.

        Raises:
            SessionError: The page died while it was being probed
        """
        tasks = [self.detect_competitor(session, name, fingerprint) for name, fingerprint in catalog.items()]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def detect_competitor(self, session: PageSession, competitor_name: str,
                                fingerprint: FingerprintDefinition) -> CompetitorOutcome:
        matches: List[RawMatch] = []

        for definition_field in fingerprint.populated_fields():
            extractor = self.extractors.get(definition_field)
            if extractor is None:
                continue
            definition = getattr(fingerprint, definition_field)
            found = await self._run_extractor(session, competitor_name, definition_field, extractor, definition)
            matches.extend(found)

        confidence = ConfidenceScorer.score(matches)
        if matches:
            logger.info(f"{competitor_name}: {len(matches)} matches on {session.target.url} ({confidence}% confidence)")
        return CompetitorOutcome(competitor_name=competitor_name, matches=tuple(matches), confidence=confidence)

    async def _run_extractor(self, session: PageSession, competitor_name: str, definition_field: str,
                             extractor, definition) -> List[RawMatch]:
        """Run one extractor; any fault other than a dead page counts as zero matches."""
        label = f"{definition_field} extractor for {competitor_name}"
        try:
            found = await asyncio.wait_for(extractor.extract(session, definition), timeout=self.extractor_timeout)
            logger.debug(f"{label} found {len(found)} matches")
            return found
        except asyncio.TimeoutError:
            if session.is_closed():
                raise SessionError(f"Page closed while running {label}") from None
            logger.warning(f"{label} timed out after {self.extractor_timeout}s")
            return []
        except Exception as e:
            if session.is_closed():
                raise SessionError(f"Page closed while running {label}: {e}") from e
            logger.error(f"Error in {label}: {e}", exc_info=True)
            return []
