import logging
import os
import re
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from core.errors import ConfigurationError
from models.fingerprint import (
    FingerprintCatalog,
    FingerprintDefinition,
    HeadTagDefinition,
    ScriptsDefinition,
    ScriptTagDefinition,
)
from models.scan import Customer, CustomerPage, Target

logger = logging.getLogger(__name__)

CATALOG_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_FINGERPRINTS_PATH = os.path.join(CATALOG_DIR, "fingerprints.yaml")
DEFAULT_CUSTOMERS_PATH = os.path.join(CATALOG_DIR, "customers.yaml")


def _yaml_files(path: str) -> List[str]:
    """A single file, or every .yaml/.yml file of a directory in name order."""
    if os.path.isdir(path):
        return [
            os.path.join(path, filename)
            for filename in sorted(os.listdir(path))
            if filename.endswith(".yaml") or filename.endswith(".yml")
        ]
    if os.path.isfile(path):
        return [path]
    raise ConfigurationError(f"Catalog path not found: {path}")


def _read_yaml(filepath: str) -> Any:
    with open(filepath, "r") as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {filepath}: {e}") from e


def _string_tuple(value: Any, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{where} must be a list of strings")
    return tuple(value)


def _check_patterns(patterns: Iterable[str], where: str) -> None:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"Invalid regex {pattern!r} in {where}: {e}") from e


def _parse_scripts(data: Any, where: str) -> Optional[ScriptsDefinition]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where} must be a mapping")

    tags: List[ScriptTagDefinition] = []
    for index, tag in enumerate(data.get("tags") or []):
        tag_where = f"{where}.tags[{index}]"
        if not isinstance(tag, dict):
            raise ConfigurationError(f"{tag_where} must be a mapping")
        src_regex = _string_tuple(tag.get("srcRegex"), f"{tag_where}.srcRegex")
        _check_patterns(src_regex, tag_where)
        tags.append(
            ScriptTagDefinition(
                title=str(tag.get("title") or f"script {index + 1}"),
                src=_string_tuple(tag.get("src"), f"{tag_where}.src"),
                src_regex=src_regex,
            )
        )

    # A bare src list is shorthand for one untitled script tag
    shorthand_src = _string_tuple(data.get("src"), f"{where}.src")
    shorthand_regex = _string_tuple(data.get("srcRegex"), f"{where}.srcRegex")
    _check_patterns(shorthand_regex, where)
    if shorthand_src or shorthand_regex:
        tags.append(ScriptTagDefinition(title="scripts", src=shorthand_src, src_regex=shorthand_regex))

    return ScriptsDefinition(
        tags=tuple(tags),
        ids=_string_tuple(data.get("ids"), f"{where}.ids"),
        keywords=_string_tuple(data.get("keywords"), f"{where}.keywords"),
    )


def _parse_head_tags(data: Any, where: str) -> Tuple[HeadTagDefinition, ...]:
    if data is None:
        return ()
    if not isinstance(data, list):
        raise ConfigurationError(f"{where} must be a list")
    head_tags = []
    for index, item in enumerate(data):
        if not isinstance(item, dict) or not item.get("tag"):
            raise ConfigurationError(f"{where}[{index}] needs a tag name")
        head_tags.append(HeadTagDefinition(tag=item["tag"], href=item.get("href"), rel=item.get("rel")))
    return tuple(head_tags)


def parse_fingerprint(name: str, data: Any) -> FingerprintDefinition:
    """Build a fingerprint from its YAML mapping (camelCase keys)."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Fingerprint {name!r} must be a mapping")

    return FingerprintDefinition(
        scripts=_parse_scripts(data.get("scripts"), f"{name}.scripts"),
        api_requests_urls=_string_tuple(data.get("apiRequestsURLs"), f"{name}.apiRequestsURLs"),
        window_variables=_string_tuple(data.get("windowVariables"), f"{name}.windowVariables"),
        data_attributes=_string_tuple(data.get("dataAttributes"), f"{name}.dataAttributes"),
        cookies=_string_tuple(data.get("cookies"), f"{name}.cookies"),
        head_tags=_parse_head_tags(data.get("headTags"), f"{name}.headTags"),
        classes_list=_string_tuple(data.get("classesList"), f"{name}.classesList"),
    )


def load_fingerprints(path: str = DEFAULT_FINGERPRINTS_PATH) -> FingerprintCatalog:
    """
    Loads competitor fingerprints from a YAML file or every YAML file in a directory.

    Each file holds a top-level ``fingerprints`` mapping of competitor name to
    definition. The returned catalog is read-only.
    """
    fingerprints: Dict[str, FingerprintDefinition] = {}
    for filepath in _yaml_files(path):
        data = _read_yaml(filepath)
        if not data:
            continue
        entries = data.get("fingerprints") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            raise ConfigurationError(f"{filepath} must contain a 'fingerprints' mapping")

        for name, definition in entries.items():
            if name in fingerprints:
                raise ConfigurationError(f"Duplicate fingerprint {name!r} in {filepath}")
            fingerprints[name] = parse_fingerprint(name, definition)
            if fingerprints[name].is_empty():
                logger.warning(f"Fingerprint {name!r} in {filepath} has no signals and can never match")

    logger.info(f"Loaded {len(fingerprints)} competitor fingerprints")
    return MappingProxyType(fingerprints)


def load_customers(path: str = DEFAULT_CUSTOMERS_PATH) -> List[Customer]:
    """Loads customers and their pages from a YAML file or directory."""
    customers: List[Customer] = []
    for filepath in _yaml_files(path):
        data = _read_yaml(filepath)
        if not data:
            continue
        entries = data.get("customers") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise ConfigurationError(f"{filepath} must contain a 'customers' list")

        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("name"):
                raise ConfigurationError(f"Invalid customer entry in {filepath}: {entry}")
            pages = []
            for page in entry.get("pages") or []:
                if not isinstance(page, dict) or not page.get("url"):
                    raise ConfigurationError(f"Customer {entry['name']!r} has a page without url in {filepath}")
                pages.append(CustomerPage(name=str(page.get("name") or page["url"]), url=page["url"]))
            customers.append(Customer(name=entry["name"], pages=tuple(pages)))

    logger.info(f"Loaded {len(customers)} customers")
    return customers


def build_targets(customers: Iterable[Customer], customer_filter: Optional[str] = None) -> List[Target]:
    """
    Flatten customers into scan targets.

    Args:
        customers: Loaded customers
        customer_filter: Case-insensitive substring a customer name must contain

    Raises:
        ConfigurationError: No target is left to scan
    """
    customers = list(customers)
    if customer_filter:
        needle = customer_filter.lower()
        customers = [c for c in customers if needle in c.name.lower()]
        if not customers:
            raise ConfigurationError(f"No customer matches filter {customer_filter!r}")
        logger.info(f"Filtering for customer: {customer_filter!r} ({len(customers)} matched)")

    targets = [
        Target(customer=customer.name, page_label=page.name, url=page.url)
        for customer in customers
        for page in customer.pages
    ]
    if not targets:
        raise ConfigurationError("No pages to scan")
    return targets
