from dataclasses import dataclass
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class ScriptTagDefinition:
    """One known script of a competitor, matched by source URL."""
    title: str
    src: Tuple[str, ...] = () # Exact substrings of the script source
    src_regex: Tuple[str, ...] = () # Fallback patterns against full script URLs


@dataclass(frozen=True)
class ScriptsDefinition:
    tags: Tuple[ScriptTagDefinition, ...] = ()
    ids: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = () # Searched across inline script text

    def is_empty(self) -> bool:
        return not (self.tags or self.ids or self.keywords)


@dataclass(frozen=True)
class HeadTagDefinition:
    tag: str
    href: Optional[str] = None # Substring of the href attribute
    rel: Optional[str] = None # Exact value of the rel attribute

    @property
    def selector(self) -> str:
        selector = self.tag
        if self.href:
            selector += f'[href*="{self.href}"]'
        if self.rel:
            selector += f'[rel="{self.rel}"]'
        return selector


@dataclass(frozen=True)
class FingerprintDefinition:
    """Declarative signature of one competitor technology.

    Every sub-definition is optional. A fingerprint with nothing populated
    can never match anything.
    """
    scripts: Optional[ScriptsDefinition] = None
    api_requests_urls: Tuple[str, ...] = ()
    window_variables: Tuple[str, ...] = ()
    data_attributes: Tuple[str, ...] = ()
    cookies: Tuple[str, ...] = ()
    head_tags: Tuple[HeadTagDefinition, ...] = ()
    classes_list: Tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not any(self.populated_fields())

    def populated_fields(self) -> Tuple[str, ...]:
        """Names of the sub-definitions that carry at least one entry."""
        populated = []
        if self.scripts is not None and not self.scripts.is_empty():
            populated.append("scripts")
        for name in ("api_requests_urls", "window_variables", "data_attributes",
                     "cookies", "head_tags", "classes_list"):
            if getattr(self, name):
                populated.append(name)
        return tuple(populated)


# Read-only for the whole run, keyed by competitor name
FingerprintCatalog = Mapping[str, FingerprintDefinition]
