"""
Relevance scoring of memory records against a query.

Score = lexical + recency + filter boost, all non-negative:
- Lexical: points per query term found in the content, extra when the
  content starts with the term
- Recency: max(10 - whole days since creation, 0)
- Boost: constant added when the query's category/tag filter matches
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

from memory_engine.config.settings import ScoringCfg

from .categories import CategoryRegistry
from .index import TermIndex
from .schemas import MemoryQuery, MemoryRecord, ScoreBreakdown, ScoredMemory, as_utc, utcnow
from .terms import query_terms


logger = logging.getLogger(__name__)


def matches_filter(
    query: MemoryQuery,
    record: MemoryRecord,
    categories: Optional[CategoryRegistry] = None,
) -> bool:
    """
    Check a record against the query's category/tag filters.

    True when the category matches or any filter tag is on the record.
    A query without filters matches nothing (there is nothing to boost).
    """
    if not query.has_filter:
        return False

    registry = categories or CategoryRegistry()
    if query.category:
        wanted = registry.normalize(query.category)
        if wanted is not None and wanted == registry.normalize(record.category):
            return True

    if query.tags and set(query.tags) & set(record.tags):
        return True

    return False


def apply_filters(
    query: MemoryQuery,
    records: Iterable[MemoryRecord],
    categories: Optional[CategoryRegistry] = None,
) -> List[MemoryRecord]:
    """
    Restrict a snapshot to the query's persona and (strict) label filters.

    Args:
        query: Query with optional persona/category/tag filters
        records: Owner snapshot
        categories: Registry used to compare category names

    Returns:
        Records that remain candidates, in snapshot order
    """
    registry = categories or CategoryRegistry()
    kept = []
    for record in records:
        if query.persona_id is not None and record.persona_id != query.persona_id:
            continue
        if query.strict_filter and query.has_filter and not matches_filter(query, record, registry):
            continue
        kept.append(record)
    return kept


class RelevanceScorer:
    """
    Scores memory records against a query.

    Deterministic for a fixed clock: the same (query, record, now) always
    yields the same score.
    """

    def __init__(
        self,
        cfg: Optional[ScoringCfg] = None,
        categories: Optional[CategoryRegistry] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize scorer.

        Args:
            cfg: Scoring weights and limits
            categories: Category lookup used for filter matching
            clock: Source of "now" when a call does not pass one
        """
        self.cfg = cfg or ScoringCfg()
        self.categories = categories or CategoryRegistry()
        self.clock = clock

    def query_terms(self, query: MemoryQuery) -> List[str]:
        return query_terms(query.text, min_length=self.cfg.min_query_term_length)

    def recency_score(self, record: MemoryRecord, now: datetime) -> float:
        """Linear decay from the maximum to zero over as many days."""
        return float(max(self.cfg.recency_max_points - record.age_days(now), 0))

    def lexical_score(
        self,
        terms: List[str],
        record: MemoryRecord,
        index: Optional[TermIndex] = None,
        matches: Optional[Dict[str, Set[str]]] = None,
    ) -> float:
        """
        Points for query terms found in the record content.

        With an index and its precomputed match table the content itself is
        never scanned; the result is identical to the linear scan.
        """
        score = 0.0

        if index is not None and matches is not None:
            for term in terms:
                if record.id in matches.get(term, ()):
                    score += self.cfg.term_match_points
                    if index.starts_with(record.id, term):
                        score += self.cfg.prefix_match_points
            return score

        content = record.content.lower()
        for term in terms:
            if term in content:
                score += self.cfg.term_match_points
                if content.startswith(term):
                    score += self.cfg.prefix_match_points
        return score

    def score(
        self,
        query: MemoryQuery,
        record: MemoryRecord,
        now: Optional[datetime] = None,
    ) -> ScoredMemory:
        """
        Score one record against one query.

        Raises:
            InvalidQuery: If the query text is empty in search mode
        """
        query.require_search_text()
        now = as_utc(now) if now is not None else self.clock()
        return self._score(query, self.query_terms(query), record, now)

    def score_all(
        self,
        query: MemoryQuery,
        records: List[MemoryRecord],
        now: Optional[datetime] = None,
        use_index: Optional[bool] = None,
    ) -> List[ScoredMemory]:
        """
        Score every record of a (filtered) snapshot.

        Args:
            query: Search query
            records: Candidate records
            now: Reference time for recency
            use_index: Override ScoringCfg.use_index

        Returns:
            ScoredMemory per record, in input order
        """
        query.require_search_text()
        now = as_utc(now) if now is not None else self.clock()
        terms = self.query_terms(query)

        if use_index is None:
            use_index = self.cfg.use_index

        index = None
        matches = None
        if use_index and records:
            index = TermIndex(records)
            matches = index.match_table(terms)
            logger.debug(
                "Indexed %d records (%d tokens) for %d query terms",
                len(index), index.vocabulary_size, len(terms),
            )

        return [self._score(query, terms, record, now, index, matches) for record in records]

    def _score(
        self,
        query: MemoryQuery,
        terms: List[str],
        record: MemoryRecord,
        now: datetime,
        index: Optional[TermIndex] = None,
        matches: Optional[Dict[str, Set[str]]] = None,
    ) -> ScoredMemory:
        breakdown = ScoreBreakdown(
            lexical_score=self.lexical_score(terms, record, index, matches),
            recency_score=self.recency_score(record, now),
            category_boost=self.cfg.filter_boost if matches_filter(query, record, self.categories) else 0.0,
        )
        return ScoredMemory(record=record, score=breakdown.total, breakdown=breakdown)
