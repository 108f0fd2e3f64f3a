"""Dynamic extractor registration system."""
import logging
from typing import Dict, List, Optional, Set, Type

from models.detection import MatchCategory
from models.fingerprint import FingerprintDefinition

logger = logging.getLogger(__name__)


class ExtractorRegistry:
    """Registry mapping fingerprint sub-definitions to the extractors that probe them."""

    _extractors: Dict[str, Type] = {}
    _categories: Dict[str, MatchCategory] = {}
    _order: List[str] = []  # Preserve registration order

    @classmethod
    def register(cls, definition_field: str, category: MatchCategory):
        """Decorator to register an extractor class.

        Args:
            definition_field: Attribute of ``FingerprintDefinition`` the extractor consumes
                (e.g. "cookies", "head_tags")
            category: Match category the extractor produces

        Example:
            @ExtractorRegistry.register("cookies", MatchCategory.COOKIE)
            class CookiesExtractor:
                async def extract(self, session: PageSession, cookie_names) -> List[RawMatch]:
                    ...
        """
        if definition_field not in FingerprintDefinition.__dataclass_fields__:
            raise ValueError(f"FingerprintDefinition has no field {definition_field!r}")

        def decorator(extractor_class: Type):
            if definition_field in cls._extractors:
                logger.warning(f"Extractor for '{definition_field}' already registered, overwriting")
            else:
                cls._order.append(definition_field)

            cls._extractors[definition_field] = extractor_class
            cls._categories[definition_field] = category
            logger.debug(f"Registered extractor: {definition_field} ({category.value}) -> {extractor_class.__name__}")
            return extractor_class
        return decorator

    @classmethod
    def get_all_fields(cls) -> List[str]:
        """Get the definition fields of all registered extractors in registration order."""
        return cls._order.copy()

    @classmethod
    def get_category(cls, definition_field: str) -> Optional[MatchCategory]:
        return cls._categories.get(definition_field)

    @classmethod
    def instantiate_all(cls, exclude: Set[str] = None) -> Dict[str, object]:
        """Instantiate registered extractors.

        Args:
            exclude: Definition fields whose extractors should be skipped

        Returns:
            Dictionary mapping definition field to extractor instance
        """
        exclude = exclude or set()
        instances = {}

        for definition_field in cls._order:
            if definition_field in exclude:
                logger.info(f"Skipping excluded extractor: {definition_field}")
                continue
            instances[definition_field] = cls._extractors[definition_field]()
            logger.debug(f"Instantiated extractor: {definition_field}")

        return instances

