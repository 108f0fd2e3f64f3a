from typing import Dict, Iterable, List, Optional
import logging
import re

from browser.session import PageSession
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory, RawMatch
from models.fingerprint import ScriptsDefinition, ScriptTagDefinition

logger = logging.getLogger(__name__)

# Every <script> element: resolved src, raw src attribute, id and inline text
SCRIPT_ELEMENTS_JS = """() => Array.from(document.querySelectorAll('script')).map(s => ({
    src: s.src || '',
    srcAttr: s.getAttribute('src') || '',
    id: s.id || '',
    text: s.textContent || ''
}))"""

MAX_KEYWORD_LOCATIONS = 5


@ExtractorRegistry.register("scripts", MatchCategory.SCRIPT)
class ScriptsExtractor:
    """Match script tags by source, element id and inline keywords."""

    async def extract(self, session: PageSession, definition: ScriptsDefinition) -> List[RawMatch]:
        scripts: List[Dict[str, str]] = await session.page.evaluate(SCRIPT_ELEMENTS_JS)
        logger.debug(f"Found {len(scripts)} script elements on {session.target.url}")

        matches: List[RawMatch] = []
        script_urls = self._script_urls(scripts, session.network.unique_urls("script"))

        for tag in definition.tags:
            matches.extend(self._match_tag(tag, scripts, script_urls))

        for script_id in definition.ids:
            found = next((s for s in scripts if s.get("id") == script_id), None)
            if found:
                matches.append(
                    RawMatch(
                        category=MatchCategory.SCRIPT,
                        matched_value=script_id,
                        subtype="id",
                        details={"actualValue": found["id"], "selector": f"script#{script_id}"},
                    )
                )

        for keyword in definition.keywords:
            found_in = [
                {"src": s.get("src") or None, "id": s.get("id") or None}
                for s in scripts
                if keyword in (s.get("text") or "")
            ]
            if found_in:
                matches.append(
                    RawMatch(
                        category=MatchCategory.SCRIPT,
                        matched_value=keyword,
                        subtype="keyword",
                        details={"foundIn": found_in[:MAX_KEYWORD_LOCATIONS], "matchCount": len(found_in)},
                    )
                )

        return matches

    @staticmethod
    def _script_urls(scripts: Iterable[Dict[str, str]], requested: Iterable[str]) -> List[str]:
        """Script URLs from the DOM plus script requests seen on the network, deduplicated."""
        urls: Dict[str, None] = {}
        for script in scripts:
            if script.get("src"):
                urls.setdefault(script["src"], None)
        for url in requested:
            urls.setdefault(url, None)
        return list(urls)

    def _match_tag(self, tag: ScriptTagDefinition, scripts: List[Dict[str, str]],
                   script_urls: List[str]) -> List[RawMatch]:
        """Exact source substrings first; regex patterns only when none of them matched."""
        matches: List[RawMatch] = []
        for src in tag.src:
            actual = self._find_source(src, scripts)
            if actual:
                matches.append(
                    RawMatch(
                        category=MatchCategory.SCRIPT,
                        matched_value=src,
                        subtype="src",
                        details={"title": tag.title, "actualValue": actual,
                                 "selector": f'script[src*="{src}"]'},
                    )
                )
        if matches:
            return matches

        for pattern in tag.src_regex:
            regex = re.compile(pattern, re.IGNORECASE)
            url = next((u for u in script_urls if regex.search(u)), None)
            if url:
                matches.append(
                    RawMatch(
                        category=MatchCategory.SCRIPT,
                        matched_value=pattern,
                        subtype="regex",
                        details={"title": tag.title, "actualValue": url, "pattern": pattern},
                    )
                )
        return matches

    @staticmethod
    def _find_source(src: str, scripts: Iterable[Dict[str, str]]) -> Optional[str]:
        for script in scripts:
            for candidate in (script.get("srcAttr"), script.get("src")):
                if candidate and src in candidate:
                    return candidate
        return None
