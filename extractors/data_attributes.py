from typing import Dict, List, Sequence

from browser.session import PageSession
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory, RawMatch


# Every attribute name in the document, with its first value and usage count
ATTRIBUTE_NAMES_JS = """() => {
    const seen = {};
    document.querySelectorAll('*').forEach(el => {
        for (const attr of el.attributes) {
            const entry = seen[attr.name];
            if (entry) {
                entry.count += 1;
            } else {
                seen[attr.name] = {name: attr.name, value: attr.value, count: 1};
            }
        }
    });
    return Object.values(seen);
}"""


@ExtractorRegistry.register("data_attributes", MatchCategory.DATA_ATTRIBUTE)
class DataAttributesExtractor:
    """Match attribute names. ``data-foo-*`` matches any attribute name containing ``data-foo-``."""

    async def extract(self, session: PageSession, attributes: Sequence[str]) -> List[RawMatch]:
        found: List[Dict] = await session.page.evaluate(ATTRIBUTE_NAMES_JS)
        matches: List[RawMatch] = []

        for attr in attributes:
            if attr.endswith("*"):
                base = attr[:-1].lower()
                hits = [a for a in found if base in a["name"]]
                if hits:
                    matches.append(
                        RawMatch(
                            category=MatchCategory.DATA_ATTRIBUTE,
                            matched_value=attr,
                            details={
                                "matchCount": sum(a.get("count", 1) for a in hits),
                                "actualAttributes": {a["name"]: a.get("value", "") for a in hits},
                            },
                        )
                    )
            else:
                hit = next((a for a in found if a["name"] == attr.lower()), None)
                if hit:
                    matches.append(
                        RawMatch(
                            category=MatchCategory.DATA_ATTRIBUTE,
                            matched_value=attr,
                            details={"actualValue": hit.get("value"), "selector": f"[{attr}]"},
                        )
                    )

        return matches
