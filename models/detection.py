from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple


class MatchCategory(str, Enum):
    """Signal categories, valued with the names used in saved results."""
    SCRIPT = "script"
    WINDOW_VARIABLE = "windowVariable"
    CLASS = "class"
    DATA_ATTRIBUTE = "dataAttribute"
    API_REQUEST = "apiRequest"
    COOKIE = "cookie"
    HEAD_TAG = "headTag"


@dataclass(frozen=True)
class RawMatch:
    """Represents one piece of evidence that a fingerprint matched the page."""
    category: MatchCategory
    matched_value: str
    subtype: Optional[str] = None # Script matches only: src, regex, keyword, id
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))


@dataclass(frozen=True)
class CompetitorOutcome:
    """Matches found for one competitor on one page, with their confidence."""
    competitor_name: str
    matches: Tuple[RawMatch, ...]
    confidence: int

    @property
    def detected(self) -> bool:
        return bool(self.matches)
