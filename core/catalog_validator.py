"""
Utility functions to validate a fingerprint catalog for shared signals and inconsistencies.
"""
from collections import defaultdict
from enum import Enum
from typing import Dict, List

from models.fingerprint import FingerprintCatalog


class SharedSignal(Enum):
    """Signals that weaken attribution when several competitors use them."""
    COOKIE = 'cookies'
    API_URL = 'api_requests_urls'
    WINDOW_VARIABLE = 'window_variables'
    DATA_ATTRIBUTE = 'data_attributes'

    def __str__(self) -> str:
        """Return human-readable signal name."""
        names = {
            'cookies': 'Cookies',
            'api_requests_urls': 'API URLs',
            'window_variables': 'Window variables',
            'data_attributes': 'Data attributes',
        }
        return names[self.value]


def detect_signal_overlaps(catalog: FingerprintCatalog, signal: SharedSignal) -> Dict[str, List[str]]:
    """
    Detect one kind of signal configured for more than one competitor.

    Args:
        catalog: Loaded fingerprint catalog
        signal: Which sub-definition to compare

    Returns:
        Dictionary with signal values as keys and list of competitors as values
    """
    signal_map = defaultdict(list)

    for competitor, fingerprint in catalog.items():
        for value in getattr(fingerprint, signal.value):
            if competitor not in signal_map[value]:
                signal_map[value].append(competitor)

    # Return only values used by multiple competitors
    return {
        value: competitors
        for value, competitors in signal_map.items()
        if len(competitors) > 1
    }


def detect_empty_fingerprints(catalog: FingerprintCatalog) -> List[str]:
    """Competitors whose fingerprint has no populated sub-definition."""
    return [name for name, fingerprint in catalog.items() if fingerprint.is_empty()]


def detect_misplaced_wildcards(catalog: FingerprintCatalog) -> Dict[str, List[str]]:
    """
    Find wildcards that are not a single trailing ``*``.

    Classes and data attributes only honour a trailing wildcard, anything
    else silently changes the meaning of the entry.
    """
    problems = defaultdict(list)
    for competitor, fingerprint in catalog.items():
        for value in list(fingerprint.classes_list) + list(fingerprint.data_attributes):
            if "*" in value and (value.count("*") > 1 or not value.endswith("*")):
                problems[competitor].append(value)
    return dict(problems)


def detect_all_overlaps(catalog: FingerprintCatalog) -> Dict[str, Dict[str, List[str]]]:
    """Run every overlap check, keyed by signal name."""
    return {str(signal): detect_signal_overlaps(catalog, signal) for signal in SharedSignal}


def print_validation_report(catalog: FingerprintCatalog) -> bool:
    """
    Print a human-readable report of catalog problems.

    Returns:
        True when the catalog has no problems worth fixing
    """
    print("=" * 80)
    print("FINGERPRINT CATALOG VALIDATION REPORT")
    print("=" * 80)
    print(f"\nTotal competitors: {len(catalog)}")

    clean = True

    empty = detect_empty_fingerprints(catalog)
    if empty:
        clean = False
        print(f"\n⚠ Fingerprints without signals ({len(empty)}):")
        for name in empty:
            print(f"  - {name}")

    wildcards = detect_misplaced_wildcards(catalog)
    if wildcards:
        clean = False
        print(f"\n⚠ Misplaced wildcards ({sum(len(v) for v in wildcards.values())}):")
        for competitor, values in wildcards.items():
            print(f"  - {competitor}: {', '.join(values)}")

    for signal_name, overlaps in detect_all_overlaps(catalog).items():
        if not overlaps:
            continue
        clean = False
        print(f"\n⚠ {signal_name} shared by several competitors ({len(overlaps)}):")
        for value, competitors in sorted(overlaps.items()):
            print(f"  - {value}: {', '.join(competitors)}")

    if clean:
        print("\n✓ No problems found")
    print("=" * 80)
    return clean
