"""Summarize a patient's symptom history into counts, averages and day buckets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from healthtrack.models import SymptomRecord, SymptomType, TimelineBucket, canonical_symptom_type


def round_half_up(value: float, places: int = 2) -> float:
    """Round half away from zero (2.345 -> 2.35), unlike the built-in round()."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def empty_type_counts() -> dict[str, int]:
    return {symptom_type.value: 0 for symptom_type in SymptomType}


def utc_day(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d")


@dataclass
class HistoryAggregate:
    counts_by_type: dict[str, int] = field(default_factory=empty_type_counts)
    total: int = 0
    avg_severity: float | None = None
    timeline: list[TimelineBucket] = field(default_factory=list)
    first_record_date: datetime | None = None
    last_record_date: datetime | None = None


def aggregate_history(records: Iterable[SymptomRecord]) -> HistoryAggregate:
    """Count, average and bucket records by UTC day.

    Records must already be ordered oldest first; first/last dates are taken
    from input order. The overall average divides by the total record count,
    so records without a severity pull it down.
    """
    counts = empty_type_counts()
    total = 0
    severity_sum = 0
    days: dict[str, list[int]] = {}  # day -> [count, severity sum]
    first: datetime | None = None
    last: datetime | None = None

    for record in records:
        total += 1
        counts[canonical_symptom_type(record.type).value] += 1

        severity = record.severity if isinstance(record.severity, int) else None
        if severity is not None:
            severity_sum += severity

        day = days.setdefault(utc_day(record.created_at), [0, 0])
        day[0] += 1
        if severity is not None:
            day[1] += severity

        if first is None:
            first = record.created_at
        last = record.created_at

    timeline = [
        TimelineBucket(date=date, count=count, avg_severity=round_half_up(day_sum / count))
        for date, (count, day_sum) in sorted(days.items())
    ]

    return HistoryAggregate(
        counts_by_type=counts,
        total=total,
        avg_severity=round_half_up(severity_sum / total) if total > 0 else None,
        timeline=timeline,
        first_record_date=first,
        last_record_date=last,
    )
