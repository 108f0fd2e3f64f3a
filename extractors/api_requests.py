from typing import List, Sequence

from browser.session import PageSession
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory, RawMatch

MAX_SAMPLE_REQUESTS = 5


@ExtractorRegistry.register("api_requests_urls", MatchCategory.API_REQUEST)
class ApiRequestsExtractor:
    """Match configured URLs against requests captured while the page loaded.

    Captured requests are deduplicated by URL, and each configured URL yields at
    most one match however many requests it covers.
    """

    async def extract(self, session: PageSession, api_urls: Sequence[str]) -> List[RawMatch]:
        captured = session.network.requests
        unique_urls = session.network.unique_urls()
        matches: List[RawMatch] = []

        for api_url in api_urls:
            hits = [url for url in unique_urls if api_url in url]
            if not hits:
                continue
            first = next(r for r in captured if r.url == hits[0])
            matches.append(
                RawMatch(
                    category=MatchCategory.API_REQUEST,
                    matched_value=api_url,
                    details={
                        "matchCount": len(hits),
                        "requests": hits[:MAX_SAMPLE_REQUESTS],
                        "method": first.method,
                        "resourceType": first.resource_type,
                    },
                )
            )

        return matches
