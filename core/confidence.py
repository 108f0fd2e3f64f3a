"""Confidence scoring for competitor detections.

Scores are additive points per match: each match adds the weight of its
category (and, for scripts, its subtype), the sum saturates at 100, and a
single near-conclusive signal lifts the result to at least 70. The score
does not depend on how large the fingerprint definition is.
"""
from typing import Iterable, List
import logging

from models.detection import MatchCategory, RawMatch

logger = logging.getLogger(__name__)


class ConfidenceScorer:
    """Turns a bag of raw matches into an integer confidence from 0 to 100."""

    # Script matches are weighted by how they were found
    SCRIPT_WEIGHTS = {
        "src": 40,       # Exact source substring: specific CDN URLs
        "regex": 30,     # Regex fallback on script URLs, keyword tier
        "keyword": 30,   # Keyword inside inline script text
        "id": 25,        # Script element id
    }
    # Script matches with no known subtype fall back to the keyword tier
    DEFAULT_SCRIPT_WEIGHT = 30

    CATEGORY_WEIGHTS = {
        MatchCategory.WINDOW_VARIABLE: 35,
        MatchCategory.CLASS: 8,
        MatchCategory.DATA_ATTRIBUTE: 15,
        MatchCategory.API_REQUEST: 45,
        MatchCategory.COOKIE: 40,
        MatchCategory.HEAD_TAG: 30,
    }

    # Categories that are near-conclusive on their own. Script matches only
    # count when they are exact source matches.
    HIGH_VALUE_CATEGORIES = frozenset({
        MatchCategory.WINDOW_VARIABLE,
        MatchCategory.API_REQUEST,
        MatchCategory.COOKIE,
        MatchCategory.HEAD_TAG,
    })
    HIGH_VALUE_FLOOR = 70
    MAX_CONFIDENCE = 100

    @staticmethod
    def weight(match: RawMatch) -> int:
        """Point weight of a single match."""
        if match.category == MatchCategory.SCRIPT:
            return ConfidenceScorer.SCRIPT_WEIGHTS.get(
                match.subtype, ConfidenceScorer.DEFAULT_SCRIPT_WEIGHT
            )
        return ConfidenceScorer.CATEGORY_WEIGHTS.get(match.category, 0)

    @staticmethod
    def is_high_value(match: RawMatch) -> bool:
        if match.category == MatchCategory.SCRIPT:
            return match.subtype == "src"
        return match.category in ConfidenceScorer.HIGH_VALUE_CATEGORIES

    @staticmethod
    def score(matches: Iterable[RawMatch]) -> int:
        """
        Calculate the confidence for one competitor on one page.

        Args:
            matches: All matches found for the competitor. Duplicates are
                counted as many times as they appear.

        Returns:
            Integer confidence in the range [0, 100]
        """
        matches: List[RawMatch] = list(matches)
        if not matches:
            return 0

        total_score = sum(ConfidenceScorer.weight(m) for m in matches)
        confidence = min(ConfidenceScorer.MAX_CONFIDENCE, int(round(total_score)))

        if confidence < ConfidenceScorer.HIGH_VALUE_FLOOR and any(
            ConfidenceScorer.is_high_value(m) for m in matches
        ):
            logger.debug(f"Raising confidence {confidence} to floor {ConfidenceScorer.HIGH_VALUE_FLOOR}")
            confidence = ConfidenceScorer.HIGH_VALUE_FLOOR

        return max(0, min(ConfidenceScorer.MAX_CONFIDENCE, confidence))


def score(matches: Iterable[RawMatch]) -> int:
    return ConfidenceScorer.score(matches)
