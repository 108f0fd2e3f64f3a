from typing import Dict, List, Optional, Sequence

from browser.session import PageSession
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory, RawMatch
from models.fingerprint import HeadTagDefinition


HEAD_ELEMENTS_JS = """() => Array.from(document.head ? document.head.querySelectorAll('*') : []).map(el => ({
    tag: el.tagName.toLowerCase(),
    href: el.getAttribute('href'),
    rel: el.getAttribute('rel')
}))"""


@ExtractorRegistry.register("head_tags", MatchCategory.HEAD_TAG)
class HeadTagsExtractor:
    async def extract(self, session: PageSession, head_tags: Sequence[HeadTagDefinition]) -> List[RawMatch]:
        elements: List[Dict[str, Optional[str]]] = await session.page.evaluate(HEAD_ELEMENTS_JS)
        matches: List[RawMatch] = []

        for definition in head_tags:
            found = next((el for el in elements if self._matches(definition, el)), None)
            if found:
                matches.append(
                    RawMatch(
                        category=MatchCategory.HEAD_TAG,
                        matched_value=definition.selector,
                        details={
                            "tag": definition.tag,
                            "href": definition.href,
                            "rel": definition.rel,
                            "actualHref": found.get("href"),
                        },
                    )
                )

        return matches

    @staticmethod
    def _matches(definition: HeadTagDefinition, element: Dict[str, Optional[str]]) -> bool:
        if element.get("tag") != definition.tag.lower():
            return False
        if definition.href and definition.href not in (element.get("href") or ""):
            return False
        if definition.rel and element.get("rel") != definition.rel:
            return False
        return True
