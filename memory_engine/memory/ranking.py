"""
Ranking and top-K selection of scored memories.
"""

from typing import Iterable, List, Sequence

from .schemas import MemoryRecord, ScoredMemory


def clamp_limit(k: int, size: int) -> int:
    """Clamp K to [1, size]; 0 when there is nothing to select."""
    if size <= 0:
        return 0
    return max(1, min(int(k), size))


def rank_key(item: ScoredMemory):
    """Sort key: score desc, then newer first, then id for a total order."""
    return (-item.score, -item.created_at.timestamp(), item.id)


def rank(scored: Iterable[ScoredMemory], k: int) -> List[ScoredMemory]:
    """
    Select the top-K scored memories.

    Equal scores are ordered newer-first, which is how conflicting
    memories on the same topic resolve to the latest statement.

    Args:
        scored: Scored memories (not modified)
        k: Number of results wanted

    Returns:
        New list of at most K items, best first
    """
    items: Sequence[ScoredMemory] = list(scored)
    limit = clamp_limit(k, len(items))
    if limit == 0:
        return []
    return sorted(items, key=rank_key)[:limit]


def newest_first(records: Iterable[MemoryRecord], k: int) -> List[MemoryRecord]:
    """List-mode ordering: newest first, top-K, no scoring."""
    items = list(records)
    limit = clamp_limit(k, len(items))
    if limit == 0:
        return []
    return sorted(items, key=lambda r: (-r.created_at.timestamp(), r.id))[:limit]
