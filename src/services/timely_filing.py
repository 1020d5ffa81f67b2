"""
Timely Filing Rules.

Source: CMS Medicare Claims Processing Manual Chapter 1 Section 70;
commercial payer provider manuals
Verified: 2025-12-19

Looks up the filing limit for a claim filing indicator and classifies
how close a claim is to, or past, that limit.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Mapping, Optional, Union

from src.core.enums import ClaimFilingIndicator


# Default filing limits in days, keyed by SBR09 claim filing indicator
DEFAULT_FILING_LIMITS: dict[str, int] = {
    ClaimFilingIndicator.MEDICARE_PART_A.value: 365,
    ClaimFilingIndicator.MEDICARE_PART_B.value: 365,
    ClaimFilingIndicator.MEDICAID.value: 365,
    ClaimFilingIndicator.CHAMPUS.value: 365,
    ClaimFilingIndicator.VETERANS_AFFAIRS.value: 365,
    ClaimFilingIndicator.BLUE_CROSS_BLUE_SHIELD.value: 365,
    ClaimFilingIndicator.WORKERS_COMPENSATION.value: 365,
    ClaimFilingIndicator.COMMERCIAL.value: 90,
    ClaimFilingIndicator.HMO.value: 90,
}

DEFAULT_LIMIT_DAYS = 365
DEFAULT_WARNING_RATIO = 0.9


def as_date(value: Union[date, datetime, None]) -> Optional[date]:
    """Calendar date of a date or datetime; datetimes lose their time of day."""
    if isinstance(value, datetime):
        return value.date()
    return value


class FilingStatus(str, Enum):
    """Where a claim sits relative to its filing deadline."""

    WITHIN_LIMIT = "within_limit"
    APPROACHING_DEADLINE = "approaching_deadline"
    EXCEEDED = "exceeded"
    FUTURE_SERVICE = "future_service"


@dataclass
class TimelyFilingCheck:
    """Outcome of a timely filing evaluation."""

    status: FilingStatus
    limit_days: int
    elapsed_days: int
    filing_indicator: Optional[str] = None

    @property
    def days_remaining(self) -> int:
        return self.limit_days - self.elapsed_days


@dataclass
class TimelyFilingPolicy:
    """Filing limit table with the approaching-deadline threshold."""

    limits: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_FILING_LIMITS))
    default_limit_days: int = DEFAULT_LIMIT_DAYS
    warning_ratio: float = DEFAULT_WARNING_RATIO

    @classmethod
    def with_overrides(
        cls,
        overrides: Optional[Mapping[str, int]] = None,
        default_limit_days: int = DEFAULT_LIMIT_DAYS,
        warning_ratio: float = DEFAULT_WARNING_RATIO,
    ) -> "TimelyFilingPolicy":
        """Default table with per-indicator overrides applied."""
        limits = dict(DEFAULT_FILING_LIMITS)
        limits.update(overrides or {})
        return cls(limits=limits, default_limit_days=default_limit_days, warning_ratio=warning_ratio)

    def limit_for(self, filing_indicator: Union[ClaimFilingIndicator, str, None]) -> int:
        """Filing limit in days for an indicator, falling back to the default."""
        key = getattr(filing_indicator, "value", filing_indicator)
        if not key:
            return self.default_limit_days
        return self.limits.get(str(key).upper(), self.default_limit_days)

    def evaluate(
        self,
        service_date: date,
        submission_date: date,
        filing_indicator: Union[ClaimFilingIndicator, str, None] = None,
    ) -> TimelyFilingCheck:
        """
        Classify a claim against its filing limit.

        Args:
            service_date: Earliest date of service on the claim
            submission_date: Date the claim is submitted
            filing_indicator: SBR09 claim filing indicator

        Returns:
            TimelyFilingCheck with status, limit and elapsed days
        """
        limit = self.limit_for(filing_indicator)
        elapsed = (as_date(submission_date) - as_date(service_date)).days
        indicator = getattr(filing_indicator, "value", filing_indicator)

        if elapsed < 0:
            status = FilingStatus.FUTURE_SERVICE
        elif elapsed > limit:
            status = FilingStatus.EXCEEDED
        elif elapsed > limit * self.warning_ratio:
            status = FilingStatus.APPROACHING_DEADLINE
        else:
            status = FilingStatus.WITHIN_LIMIT

        return TimelyFilingCheck(
            status=status,
            limit_days=limit,
            elapsed_days=elapsed,
            filing_indicator=indicator,
        )
