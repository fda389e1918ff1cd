"""
Analytics aggregation over a memory snapshot.

Best-effort: malformed entries are skipped and counted, empty snapshots
produce zeroed structures, and ratios never divide by zero.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from memory_engine.config.settings import AggregationCfg

from .categories import CategoryRegistry
from .errors import InvalidWindow
from .schemas import (
    AggregateSnapshot,
    CategoryCount,
    MemoryRecord,
    NamedCount,
    SECONDS_PER_DAY,
    TagCount,
    TimelineEntry,
    as_utc,
    utcnow,
)
from .terms import TermExtractor


logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

AGE_BUCKETS: Tuple[Tuple[str, float], ...] = (
    ("Today", 1),
    ("Last 7 days", 7),
    ("Last 30 days", 30),
    ("Last 90 days", 90),
    ("Last year", 365),
    ("Older", float("inf")),
)


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


class MemoryAggregator:
    """Computes AggregateSnapshot views for analytics surfaces."""

    def __init__(
        self,
        cfg: Optional[AggregationCfg] = None,
        extractor: Optional[TermExtractor] = None,
        categories: Optional[CategoryRegistry] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cfg = cfg or AggregationCfg()
        self.extractor = extractor or TermExtractor()
        self.categories = categories or CategoryRegistry()
        self.clock = clock

    def validate_window(self, window_days: int) -> int:
        if window_days not in self.cfg.allowed_windows:
            raise InvalidWindow(
                f"Unsupported timeline window {window_days}; "
                f"expected one of {sorted(self.cfg.allowed_windows)}"
            )
        return window_days

    def coerce_records(self, items: Iterable[Any]) -> Tuple[List[MemoryRecord], int]:
        """
        Validate raw snapshot entries.

        Args:
            items: MemoryRecord objects or raw dicts from the store

        Returns:
            (valid records, number of skipped malformed entries)
        """
        records: List[MemoryRecord] = []
        skipped = 0

        for item in items:
            if isinstance(item, MemoryRecord):
                records.append(item)
                continue
            if isinstance(item, Mapping):
                try:
                    records.append(MemoryRecord.model_validate(dict(item)))
                    continue
                except ValidationError as e:
                    logger.warning("Skipping malformed memory %s: %s", item.get("id"), e.errors()[0]["msg"])
            else:
                logger.warning("Skipping unreadable memory entry of type %s", type(item).__name__)
            skipped += 1

        return records, skipped

    def aggregate(
        self,
        items: Iterable[Any],
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AggregateSnapshot:
        """
        Summarize a full snapshot for one owner.

        Args:
            items: Snapshot entries (records or raw dicts)
            window_days: Timeline window, one of AggregationCfg.allowed_windows
            now: Reference time (defaults to the clock)

        Returns:
            AggregateSnapshot

        Raises:
            InvalidWindow: If window_days is not supported
        """
        window_days = self.validate_window(window_days or self.cfg.default_window_days)
        now = as_utc(now) if now is not None else self.clock()
        records, skipped = self.coerce_records(items)

        total = len(records)
        categories, uncategorized = self.category_distribution(records)
        timeline = self.timeline(records, window_days, now)

        snapshot = AggregateSnapshot(
            total_count=total,
            recent_count=self.recent_count(records, now),
            skipped_count=skipped,
            uncategorized_count=uncategorized,
            category_distribution=categories,
            tag_frequency=self.tag_frequency(records),
            age_distribution=self.age_distribution(records, now),
            window_days=window_days,
            window_total=self.window_total(records, window_days, now),
            timeline=timeline,
            average_content_length=round(safe_ratio(sum(len(r.content) for r in records), total), 2),
        )

        if records:
            oldest = min(r.created_at for r in records)
            newest = max(r.created_at for r in records)
            snapshot.oldest_created_at = oldest
            snapshot.newest_created_at = newest
            snapshot.time_span_days = round((newest - oldest).total_seconds() / SECONDS_PER_DAY, 2)

        return snapshot

    def recent_count(self, records: List[MemoryRecord], now: datetime) -> int:
        """Records created within the rolling recent window."""
        cutoff = now - timedelta(days=self.cfg.recent_window_days)
        return sum(1 for r in records if r.created_at > cutoff)

    def category_distribution(self, records: List[MemoryRecord]) -> Tuple[List[CategoryCount], int]:
        """
        Count records per canonical category.

        Returns:
            (entries sorted by count desc then name, uncategorized count)
        """
        counts: Counter = Counter()
        for record in records:
            counts[self.categories.normalize(record.category) or UNCATEGORIZED] += 1

        total = len(records)
        entries = [
            CategoryCount(name=name, value=value, percentage=round(safe_ratio(value, total) * 100, 1))
            for name, value in counts.items()
        ]
        entries.sort(key=lambda e: (-e.value, e.name))
        return entries, counts.get(UNCATEGORIZED, 0)

    def tag_frequency(self, records: List[MemoryRecord]) -> List[TagCount]:
        """
        Frequency of extracted terms and explicit tags across records.

        Each record contributes a term at most once. Only terms seen on at
        least `tag_min_count` records are kept, capped to `tag_top_n`.
        """
        counts: Counter = Counter()
        for record in records:
            terms = set(self.extractor.extract(record.content))
            terms.update(record.tags)
            counts.update(terms)

        entries = [
            TagCount(value=value, count=count)
            for value, count in counts.items()
            if count >= self.cfg.tag_min_count
        ]
        entries.sort(key=lambda e: (-e.count, e.value))
        return entries[:self.cfg.tag_top_n]

    def age_distribution(self, records: List[MemoryRecord], now: datetime) -> List[NamedCount]:
        counts = {name: 0 for name, _ in AGE_BUCKETS}
        for record in records:
            age = record.age_days(now)
            for name, limit in AGE_BUCKETS:
                if age < limit:
                    counts[name] += 1
                    break
        return [NamedCount(name=name, value=value) for name, value in counts.items()]

    def window_total(self, records: List[MemoryRecord], window_days: int, now: datetime) -> int:
        """Records whose creation day falls inside the timeline window."""
        today = now.date()
        start = today - timedelta(days=window_days)
        return sum(1 for r in records if start <= r.created_date() <= today)

    def timeline(self, records: List[MemoryRecord], window_days: int, now: datetime) -> List[TimelineEntry]:
        """
        Per-day counts with a running cumulative total.

        The window spans `window_days + 1` calendar days (UTC) ending today,
        zero-activity days included.
        """
        today = now.date()
        start = today - timedelta(days=window_days)
        per_day = Counter(r.created_date() for r in records)

        entries = []
        cumulative = 0
        for offset in range(window_days + 1):
            day = start + timedelta(days=offset)
            count = per_day.get(day, 0)
            cumulative += count
            entries.append(TimelineEntry(date=day.isoformat(), count=count, cumulative=cumulative))
        return entries
