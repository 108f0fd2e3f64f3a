"""Serialization, persistence and console rendering of batch results."""
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.detection import CompetitorOutcome, RawMatch
from models.scan import BatchSummary, ScanOutcome

logger = logging.getLogger(__name__)


def _truncate_value(value: Any, max_length: Optional[int] = 200) -> Any:
    """Truncate strings to max_length, adding ellipsis if truncated."""
    if not isinstance(value, str) or max_length is None:
        return value
    if len(value) <= max_length:
        return value
    return value[:max_length] + "..."


def _plain(value: Any, max_length: Optional[int]) -> Any:
    """Convert evidence details into JSON-ready values."""
    if hasattr(value, "items"):
        return {str(k): _plain(v, max_length) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v, max_length) for v in value]
    return _truncate_value(value, max_length)


def _serialize_match(match: RawMatch, max_length: Optional[int]) -> Dict[str, Any]:
    serialized = {
        "type": match.category.value,
        "value": _truncate_value(match.matched_value, max_length),
    }
    details = _plain(match.details, max_length)
    if match.subtype:
        details = {"type": match.subtype, **details}
    if details:
        serialized["details"] = details
    return serialized


def _serialize_competitor(outcome: CompetitorOutcome, max_length: Optional[int]) -> Dict[str, Any]:
    return {
        "competitor": outcome.competitor_name,
        "detected": outcome.detected,
        "confidence": outcome.confidence,
        "matches": [_serialize_match(m, max_length) for m in outcome.matches],
    }


def serialize_outcome(outcome: ScanOutcome, max_length: Optional[int] = 200) -> Dict[str, Any]:
    serialized = {
        "customer": outcome.target.customer,
        "pageName": outcome.target.page_label,
        "url": outcome.target.url,
        "timestamp": outcome.timestamp.isoformat(),
        "success": outcome.success,
    }
    if outcome.success:
        serialized["competitors"] = [_serialize_competitor(c, max_length) for c in outcome.competitor_outcomes]
    else:
        serialized["error"] = {"message": outcome.error.message, "kind": outcome.error.kind}
    return serialized


def serialize_summary(summary: BatchSummary, max_length: Optional[int] = 200) -> Dict[str, Any]:
    """JSON-ready form of a batch summary; ``max_length=None`` keeps evidence untruncated."""
    return {
        "totalPages": summary.total_targets,
        "successCount": summary.success_count,
        "failureCount": summary.failure_count,
        "results": [serialize_outcome(o, max_length) for o in summary.outcomes],
    }


def save_results(summary: BatchSummary, results_dir: str = "results", max_length: Optional[int] = None) -> str:
    """Write the summary to ``scan-results-<timestamp>.json`` and return its path."""
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    os.makedirs(results_dir, exist_ok=True)
    output_path = os.path.join(results_dir, f"scan-results-{timestamp}.json")

    with open(output_path, "w") as f:
        json.dump(serialize_summary(summary, max_length), f, indent=2)
    logger.info(f"Results saved to: {output_path}")
    return output_path


def _match_hints(match: RawMatch) -> List[str]:
    details = match.details
    hints = []
    if details.get("actualValue"):
        hints.append(f"Actual value: {details['actualValue']}")
    if details.get("selector"):
        hints.append(f"Selector: {details['selector']}")
    if details.get("foundIn"):
        hints.append(f"Found in {details.get('matchCount', len(details['foundIn']))} script(s)")
    elif details.get("matchCount"):
        hints.append(f"Found {details['matchCount']} matches")
    if details.get("actualClasses"):
        hints.append(f"Classes: {', '.join(details['actualClasses'])}")
    if details.get("actualAttributes"):
        hints.append(f"Attributes: {json.dumps(dict(details['actualAttributes']))}")
    return hints


def format_summary(summary: BatchSummary, min_confidence: int = 0) -> str:
    """Render the console report: detected competitors per page, or the failure reason."""
    lines = ["", "=== SCAN SUMMARY ==="]
    lines.append(f"{summary.success_count}/{summary.total_targets} pages scanned, {summary.failure_count} failed")

    for outcome in summary.outcomes:
        target = outcome.target
        lines.append("")
        lines.append(f"{target.customer} - {target.page_label} ({target.url}):")
        if not outcome.success:
            lines.append(f"  ✗ Scan failed [{outcome.error.kind}]: {outcome.error.message}")
            continue

        detected = [c for c in outcome.detected_competitors if c.confidence >= min_confidence]
        if not detected:
            lines.append("  ❌ No competitors detected")
            continue

        for competitor in detected:
            lines.append(f"  ✅ {competitor.competitor_name.upper()} detected ({competitor.confidence}% confidence)")
            lines.append(f"     Found {len(competitor.matches)} matches:")
            for index, match in enumerate(competitor.matches, start=1):
                label = f"{match.category.value}/{match.subtype}" if match.subtype else match.category.value
                lines.append(f"     {index}. {label}: \"{match.matched_value}\"")
                for hint in _match_hints(match):
                    lines.append(f"        → {hint}")

    return "\n".join(lines)
