from typing import List, Sequence, Tuple

from browser.session import PageSession
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory, RawMatch


# Distinct class attribute values with the number of elements carrying each
CLASS_ATTRIBUTES_JS = """() => {
    const counts = {};
    document.querySelectorAll('[class]').forEach(el => {
        const value = el.getAttribute('class') || '';
        counts[value] = (counts[value] || 0) + 1;
    });
    return Object.entries(counts);
}"""

MAX_SAMPLE_CLASSES = 3


@ExtractorRegistry.register("classes_list", MatchCategory.CLASS)
class ClassesExtractor:
    """Match CSS classes. ``foo*`` matches any class attribute containing ``foo``."""

    async def extract(self, session: PageSession, classes: Sequence[str]) -> List[RawMatch]:
        class_values: List[Tuple[str, int]] = [
            (value, count) for value, count in await session.page.evaluate(CLASS_ATTRIBUTES_JS)
        ]
        matches: List[RawMatch] = []

        for class_name in classes:
            if "*" in class_name:
                base = class_name.replace("*", "")
                hits = [(v, c) for v, c in class_values if base in v]
                selector = f'[class*="{base}"]'
            else:
                hits = [(v, c) for v, c in class_values if class_name in v.split()]
                selector = f".{class_name}"

            if hits:
                matches.append(
                    RawMatch(
                        category=MatchCategory.CLASS,
                        matched_value=class_name,
                        details={
                            "matchCount": sum(c for _, c in hits),
                            "actualClasses": [v for v, _ in hits[:MAX_SAMPLE_CLASSES]],
                            "selector": selector,
                        },
                    )
                )

        return matches
