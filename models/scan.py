from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from models.detection import CompetitorOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CustomerPage:
    name: str
    url: str


@dataclass(frozen=True)
class Customer:
    name: str
    pages: Tuple[CustomerPage, ...] = ()


@dataclass(frozen=True)
class Target:
    """One (customer, page label, URL) unit of work."""
    customer: str
    page_label: str
    url: str

    def __str__(self) -> str:
        return f"{self.customer} - {self.page_label}: {self.url}"


@dataclass(frozen=True)
class ScanFailure:
    message: str
    kind: str # Coarse label, e.g. "timeout", "navigation", "session"


@dataclass(frozen=True)
class ScanOutcome:
    """Terminal result of scanning one target.

    Exactly one of ``competitor_outcomes`` and ``error`` is set, depending on
    ``success``.
    """
    target: Target
    success: bool
    competitor_outcomes: Optional[Tuple[CompetitorOutcome, ...]] = None
    error: Optional[ScanFailure] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.success and (self.competitor_outcomes is None or self.error is not None):
            raise ValueError("Successful scan outcome needs competitor outcomes and no error")
        if not self.success and (self.error is None or self.competitor_outcomes is not None):
            raise ValueError("Failed scan outcome needs an error and no competitor outcomes")

    @classmethod
    def succeeded(cls, target: Target, competitor_outcomes: Iterable[CompetitorOutcome]) -> "ScanOutcome":
        return cls(target=target, success=True, competitor_outcomes=tuple(competitor_outcomes))

    @classmethod
    def failed(cls, target: Target, message: str, kind: str) -> "ScanOutcome":
        return cls(target=target, success=False, error=ScanFailure(message=message, kind=kind))

    @property
    def detected_competitors(self) -> Tuple[CompetitorOutcome, ...]:
        return tuple(c for c in self.competitor_outcomes or () if c.detected)


@dataclass(frozen=True)
class BatchSummary:
    total_targets: int
    success_count: int
    failure_count: int
    outcomes: Tuple[ScanOutcome, ...] = ()

    def __post_init__(self):
        if not (self.success_count + self.failure_count == self.total_targets == len(self.outcomes)):
            raise ValueError(
                f"Inconsistent batch counts: {self.success_count} succeeded + "
                f"{self.failure_count} failed != {self.total_targets} total "
                f"({len(self.outcomes)} outcomes)"
            )

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[ScanOutcome]) -> "BatchSummary":
        outcomes = tuple(outcomes)
        success_count = sum(1 for o in outcomes if o.success)
        return cls(
            total_targets=len(outcomes),
            success_count=success_count,
            failure_count=len(outcomes) - success_count,
            outcomes=outcomes,
        )
