from typing import Dict, List, Sequence

from browser.session import PageSession
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory, RawMatch


# Existence of each global, with a short description of its value
WINDOW_PROBE_JS = """(names) => names.map(name => {
    const exists = typeof window[name] !== 'undefined';
    let value = null;
    if (exists) {
        try {
            const val = window[name];
            if (typeof val === 'function') {
                value = '[Function]';
            } else if (typeof val === 'object' && val !== null) {
                value = '[Object]';
            } else {
                value = String(val).substring(0, 100);
            }
        } catch (e) {
            value = '[Inaccessible]';
        }
    }
    return {name, exists, value};
})"""


@ExtractorRegistry.register("window_variables", MatchCategory.WINDOW_VARIABLE)
class WindowVariablesExtractor:
    async def extract(self, session: PageSession, variables: Sequence[str]) -> List[RawMatch]:
        results: List[Dict] = await session.page.evaluate(WINDOW_PROBE_JS, list(variables))
        return [
            RawMatch(
                category=MatchCategory.WINDOW_VARIABLE,
                matched_value=result["name"],
                details={"actualValue": result.get("value")},
            )
            for result in results
            if result.get("exists")
        ]
