from typing import List, Sequence

from browser.session import PageSession
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory, RawMatch


@ExtractorRegistry.register("cookies", MatchCategory.COOKIE)
class CookiesExtractor:
    async def extract(self, session: PageSession, cookie_names: Sequence[str]) -> List[RawMatch]:
        matches: List[RawMatch] = []
        cookies = await session.cookies()

        for cookie_name in cookie_names:
            # Names are substrings; a stray wildcard means the same thing
            needle = cookie_name.replace("*", "")
            found = next((c for c in cookies if needle in c.get("name", "")), None)
            if found:
                matches.append(
                    RawMatch(
                        category=MatchCategory.COOKIE,
                        matched_value=cookie_name,
                        details={"name": found["name"], "domain": found.get("domain")},
                    )
                )

        return matches
