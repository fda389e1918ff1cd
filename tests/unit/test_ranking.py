"""
Unit tests for ranking and top-K selection.
"""

from memory_engine.memory.ranking import clamp_limit, newest_first, rank
from memory_engine.memory.schemas import ScoredMemory


def scored(record, score):
    return ScoredMemory(record=record, score=score)


def test_orders_by_score_descending(make_record):
    low = scored(make_record("low"), 3)
    high = scored(make_record("high"), 12)
    mid = scored(make_record("mid"), 7)

    assert rank([low, high, mid], 3) == [high, mid, low]


def test_equal_scores_newer_first(make_record):
    older = scored(make_record("User's favorite color is blue", days_ago=2), 10)
    newer = scored(make_record("User's favorite color is green", days_ago=0), 10)

    assert rank([older, newer], 2) == [newer, older]
    assert rank([older, newer], 1) == [newer]


def test_k_clamped(make_record):
    items = [scored(make_record(f"m{i}"), i) for i in range(4)]

    assert len(rank(items, 0)) == 1
    assert len(rank(items, -5)) == 1
    assert len(rank(items, 100)) == 4


def test_empty_input():
    assert rank([], 5) == []
    assert clamp_limit(5, 0) == 0


def test_input_not_mutated(make_record):
    items = [scored(make_record("a"), 1), scored(make_record("b"), 9)]
    snapshot = list(items)

    rank(items, 2)

    assert items == snapshot


def test_repeatable(make_record):
    items = [scored(make_record(f"m{i}", days_ago=i % 3), i % 2) for i in range(9)]
    assert rank(items, 5) == rank(list(reversed(items)), 5)


def test_newest_first(make_record):
    a = make_record("a", days_ago=5)
    b = make_record("b", days_ago=1)
    c = make_record("c", days_ago=3)

    assert newest_first([a, b, c], 2) == [b, c]
    assert newest_first([], 3) == []
