"""
Memory relevance engine.

Stateless orchestration over an injected store: every call reads a fresh
snapshot, derives its result and keeps nothing between calls, so a record
written just now is visible to the very next search.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union

from pydantic import ValidationError

from memory_engine import __version__
from memory_engine.config.settings import ContextPolicy, Settings
from memory_engine.telemetry import log_event, timed

from .aggregate import MemoryAggregator
from .categories import CategoryRegistry
from .context import ContextAssembler
from .errors import InvalidQuery, MemoryEngineError, RecordNotFound, StoreUnavailable
from .ranking import newest_first, rank
from .schemas import (
    AggregateSnapshot,
    ImportReport,
    MemoryQuery,
    MemoryRecord,
    ScoredMemory,
    utcnow,
)
from .scoring import RelevanceScorer, apply_filters
from .store import MemoryStoreBackend
from .terms import TermExtractor


logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"

T = TypeVar("T")


class MemoryEngine:
    """
    Scores, ranks, assembles and aggregates memories for one store.

    Components:
    - TermExtractor: keywords for auto-tagging and tag frequency
    - RelevanceScorer: lexical + recency + filter boost
    - rank(): top-K with newer-first tie-break
    - ContextAssembler: prompt-ready text block
    - MemoryAggregator: analytics snapshot
    """

    def __init__(
        self,
        store: MemoryStoreBackend,
        settings: Optional[Settings] = None,
        categories: Optional[CategoryRegistry] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize engine.

        Args:
            store: External memory store handle
            settings: Engine settings (defaults when None)
            categories: Category lookup table
            clock: Source of "now" for recency and analytics windows
        """
        self.store = store
        self.settings = settings or Settings()
        self.categories = categories or CategoryRegistry()
        self.clock = clock

        self.extractor = TermExtractor(self.settings.extraction)
        self.scorer = RelevanceScorer(self.settings.scoring, self.categories, clock)
        self.assembler = ContextAssembler(self.settings.context, self.categories)
        self.aggregator = MemoryAggregator(
            self.settings.aggregation, self.extractor, self.categories, clock
        )

    # ========================================================================
    # Store access
    # ========================================================================

    def _call_store(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        """Run a store call, surfacing unexpected failures as StoreUnavailable."""
        try:
            return fn(*args)
        except (MemoryEngineError, ValueError):
            raise
        except Exception as e:
            log_event("store_unavailable", operation=operation, error=str(e))
            raise StoreUnavailable(f"Memory store {operation} failed: {e}") from e

    def _snapshot(self, owner_id: str, persona_id: Optional[str]) -> List[MemoryRecord]:
        records = self._call_store("list", self.store.list_by_owner, owner_id, persona_id)
        return self._cap(records)

    def _cap(self, records: List[MemoryRecord]) -> List[MemoryRecord]:
        """Keep at most max_scan_records, newest first."""
        cap = self.settings.scoring.max_scan_records
        if len(records) <= cap:
            return records
        logger.warning("Snapshot has %d records; scanning newest %d", len(records), cap)
        return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)[:cap]

    def _require(self, record_id: str) -> MemoryRecord:
        record = self._call_store("get", self.store.get, record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    # ========================================================================
    # Retrieval
    # ========================================================================

    def search(self, query: MemoryQuery) -> List[ScoredMemory]:
        """
        Top-K memories for a query, best first.

        Raises:
            InvalidQuery: Empty query text (raised before the store is read)
            StoreUnavailable: The snapshot could not be read
        """
        if query.is_blank:
            raise InvalidQuery("Search query text cannot be empty")

        now = self.clock()
        with timed("memory_search", owner_id=query.owner_id, persona_id=query.persona_id) as event:
            snapshot = self._snapshot(query.owner_id, query.persona_id)
            candidates = apply_filters(query, snapshot, self.categories)
            scored = self.scorer.score_all(query.model_copy(update={"mode": "search"}), candidates, now)
            ranked = rank(scored, query.limit)
            event.update(snapshot_size=len(snapshot), candidates=len(candidates), returned=len(ranked))

        return ranked

    def list_memories(self, query: MemoryQuery) -> List[MemoryRecord]:
        """List mode: filtered records, newest first, no scoring."""
        snapshot = self._snapshot(query.owner_id, query.persona_id)
        return newest_first(apply_filters(query, snapshot, self.categories), query.limit)

    def build_context(self, query: MemoryQuery, policy: Optional[ContextPolicy] = None) -> str:
        """
        Search and render the prompt context block.

        An empty result renders the "no relevant memories" sentinel.
        """
        ranked = self.search(query)
        text = self.assembler.assemble(ranked, policy, category=query.category)
        log_event("memory_context", owner_id=query.owner_id, memories=len(ranked), chars=len(text))
        return text

    # ========================================================================
    # Analytics
    # ========================================================================

    def aggregate(
        self,
        owner_id: str,
        persona_id: Optional[str] = None,
        window_days: Optional[int] = None,
    ) -> AggregateSnapshot:
        """
        Analytics snapshot for an owner.

        Raises:
            InvalidWindow: Unsupported timeline window (before the store is read)
            StoreUnavailable: The snapshot could not be read
        """
        window_days = self.aggregator.validate_window(
            window_days or self.settings.aggregation.default_window_days
        )
        with timed("memory_aggregate", owner_id=owner_id, window_days=window_days) as event:
            raw = self._call_store("list", self.store.list_raw_by_owner, owner_id, persona_id)
            snapshot = self.aggregator.aggregate(raw, window_days, now=self.clock())
            event.update(total=snapshot.total_count, skipped=snapshot.skipped_count)
        return snapshot

    # ========================================================================
    # Writes
    # ========================================================================

    def remember(
        self,
        owner_id: str,
        content: str,
        persona_id: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        created_at: Optional[datetime] = None,
    ) -> MemoryRecord:
        """
        Store a new memory.

        Without explicit labels the category is suggested from keywords and
        tags are extracted from the content (when enabled in settings).
        """
        cfg = self.settings.extraction

        canonical = self.categories.normalize(category)
        if canonical is None and cfg.auto_categorize:
            canonical = self.categories.suggest(content, min_hits=cfg.category_min_hits)

        if tags is None:
            tags = self.extractor.extract(content) if cfg.auto_tag else []

        record = MemoryRecord(
            owner_id=owner_id,
            persona_id=persona_id,
            content=content,
            category=canonical,
            tags=list(tags),
            created_at=created_at or self.clock(),
        )
        self._call_store("insert", self.store.insert, record)
        logger.info("Stored memory %s for owner %s", record.id, owner_id)
        return record

    def correct(self, record_id: str, content: str) -> MemoryRecord:
        """
        Record a correction as a new memory.

        The original record is left untouched; the newer statement wins ties
        against it during ranking.
        """
        original = self._require(record_id)
        tags = self.extractor.extract(content) if self.settings.extraction.auto_tag else list(original.tags)
        return self.remember(
            owner_id=original.owner_id,
            content=content,
            persona_id=original.persona_id,
            category=original.category,
            tags=tags,
        )

    def relabel(
        self,
        record_id: str,
        tags: Optional[Iterable[str]] = None,
        category: Optional[str] = None,
    ) -> MemoryRecord:
        """
        Patch tags and/or category of a record.

        None leaves a label unchanged; an empty category string clears it.
        """
        canonical = None
        if category is not None:
            canonical = self.categories.normalize(category) or ""
        return self._call_store("patch", self.store.patch_tags, record_id, tags, canonical)

    def forget(self, record_id: str) -> None:
        """Delete one record."""
        self._call_store("delete", self.store.delete, record_id)

    def purge(self, owner_id: str, persona_id: Optional[str] = None) -> int:
        """
        Delete every stored entry of an owner (optionally one persona).

        Returns:
            Number of entries deleted
        """
        raw = self._call_store("list", self.store.list_raw_by_owner, owner_id, persona_id)
        deleted = 0
        for item in raw:
            if isinstance(item, dict) and item.get("id"):
                self._call_store("delete", self.store.delete, item["id"])
                deleted += 1
        log_event("memory_purge", owner_id=owner_id, persona_id=persona_id, deleted=deleted)
        return deleted

    # ========================================================================
    # Export / import
    # ========================================================================

    def export_records(self, owner_id: str, persona_id: Optional[str] = None) -> Dict[str, Any]:
        """Export an owner's memories in the versioned JSON export format."""
        records = self._call_store("list", self.store.list_by_owner, owner_id, persona_id)
        return {
            "version": EXPORT_FORMAT_VERSION,
            "exportDate": self.clock().isoformat(),
            "memories": [r.to_storage_dict() for r in records],
            "metadata": {
                "totalCount": len(records),
                "exportedBy": "memory-relevance-engine",
                "appVersion": __version__,
            },
        }

    def import_records(self, owner_id: str, payload: Union[str, Dict[str, Any]]) -> ImportReport:
        """
        Bulk-import memories for an owner.

        Each item becomes a new record (fresh id, original created_at kept).
        Items that fail validation or storage are reported, not fatal.

        Raises:
            ValueError: If the payload is not a valid export document
        """
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON format: {e}") from e

        if not isinstance(payload, dict) or not payload.get("version") or not isinstance(payload.get("memories"), list):
            raise ValueError("Invalid export file format")

        items = payload["memories"]
        report = ImportReport(total=len(items))

        for item in items:
            try:
                if not isinstance(item, dict):
                    raise ValueError("Memory entry must be an object")
                record = self._import_one(owner_id, item)
            except (ValidationError, ValueError, StoreUnavailable) as e:
                report.failed += 1
                report.failed_items.append({"memory": item, "error": str(e)})
                continue
            report.successful += 1
            report.imported_ids.append(record.id)

        log_event("memory_import", owner_id=owner_id, total=report.total, failed=report.failed)
        return report

    def _import_one(self, owner_id: str, item: Dict[str, Any]) -> MemoryRecord:
        record = MemoryRecord(
            owner_id=owner_id,
            persona_id=item.get("persona_id"),
            content=item.get("content") or "",
            category=self.categories.normalize(item.get("category")),
            tags=item.get("tags") or [],
            created_at=item.get("created_at") or self.clock(),
        )
        return self._call_store("insert", self.store.insert, record)
