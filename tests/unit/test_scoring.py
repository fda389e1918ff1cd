"""
Unit tests for RelevanceScorer.
"""

from datetime import timedelta

import pytest

from memory_engine.config.settings import ScoringCfg
from memory_engine.memory.errors import InvalidQuery
from memory_engine.memory.schemas import MemoryQuery
from memory_engine.memory.scoring import RelevanceScorer, apply_filters, matches_filter


@pytest.fixture
def scorer(clock):
    return RelevanceScorer(clock=clock)


def q(text, **kwargs):
    return MemoryQuery(text=text, owner_id="user_1", **kwargs)


class TestLexicalScore:

    def test_each_matching_term_scores_five(self, scorer, make_record):
        record = make_record("User drinks green tea every day", days_ago=30)
        scored = scorer.score(q("green tea"), record)

        assert scored.breakdown.lexical_score == 10
        assert scored.breakdown.recency_score == 0
        assert scored.score == 10

    def test_prefix_bonus(self, scorer, make_record):
        record = make_record("Coffee is the morning drink", days_ago=30)
        scored = scorer.score(q("coffee"), record)

        assert scored.breakdown.lexical_score == 8

    def test_substring_match(self, scorer, make_record):
        record = make_record("Painted a watercolor landscape", days_ago=30)
        assert scorer.score(q("color"), record).breakdown.lexical_score == 5

    def test_short_terms_ignored(self, scorer, make_record):
        record = make_record("it is on", days_ago=30)
        assert scorer.score(q("it is on"), record).score == 0

    def test_no_overlap(self, scorer, make_record):
        record = make_record("Likes hiking in the mountains", days_ago=30)
        assert scorer.score(q("favorite color"), record).breakdown.lexical_score == 0


class TestRecencyScore:

    @pytest.mark.parametrize("days_ago, expected", [
        (0, 10),
        (0.5, 10),
        (1, 9),
        (2, 8),
        (9.9, 1),
        (10, 0),
        (11, 0),
        (400, 0),
    ])
    def test_linear_decay(self, scorer, make_record, days_ago, expected):
        record = make_record("Some memory text", days_ago=days_ago)
        assert scorer.score(q("unrelated"), record).breakdown.recency_score == expected

    def test_future_record_treated_as_new(self, scorer, make_record):
        record = make_record("Clock skewed memory", days_ago=-3)
        assert scorer.score(q("unrelated"), record).breakdown.recency_score == 10

    def test_newer_scores_at_least_older(self, scorer, make_record):
        fresh = make_record("Favorite color is green", days_ago=0)
        stale = make_record("Favorite color is green", days_ago=11)
        query = q("favorite color")

        assert scorer.score(query, fresh).score >= scorer.score(query, stale).score
        assert scorer.score(query, fresh).score - scorer.score(query, stale).score == 10

    def test_explicit_now(self, scorer, make_record, now):
        record = make_record("Some memory text", days_ago=0)
        later = now + timedelta(days=4)
        assert scorer.score(q("memory"), record, now=later).breakdown.recency_score == 6


class TestFilterBoost:

    def test_category_match_boosts(self, scorer, make_record):
        record = make_record("Prefers dark theme", days_ago=30, category="Preferences")
        scored = scorer.score(q("theme", category="preferences"), record)

        assert scored.breakdown.category_boost == 4
        assert scored.score == 5 + 4

    def test_tag_match_boosts_once(self, scorer, make_record):
        record = make_record("Prefers dark theme", days_ago=30, category="Preferences", tags=["ui", "theme"])
        scored = scorer.score(q("theme", category="Preferences", tags=["ui", "theme"]), record)

        assert scored.breakdown.category_boost == 4

    def test_no_filter_no_boost(self, scorer, make_record):
        record = make_record("Prefers dark theme", days_ago=30, category="Preferences")
        assert scorer.score(q("theme"), record).breakdown.category_boost == 0

    def test_custom_boost(self, clock, make_record):
        scorer = RelevanceScorer(ScoringCfg(filter_boost=7), clock=clock)
        record = make_record("Prefers dark theme", days_ago=30, tags=["ui"])
        assert scorer.score(q("theme", tags=["UI"]), record).breakdown.category_boost == 7

    def test_legacy_category_alias_matches(self, make_record):
        record = make_record("Prefers dark theme", days_ago=30, category="prefs")
        assert matches_filter(q("theme", category="Preferences"), record)


class TestApplyFilters:

    def test_strict_filter_excludes(self, make_record):
        keep = make_record("Dark theme", category="Preferences")
        drop = make_record("Fix the login bug", category="Technical")

        assert apply_filters(q("theme", category="Preferences"), [keep, drop]) == [keep]

    def test_soft_filter_keeps_all(self, make_record):
        records = [make_record("Dark theme", category="Preferences"), make_record("Login bug")]
        kept = apply_filters(q("theme", category="Preferences", strict_filter=False), records)
        assert kept == records

    def test_persona_filter(self, make_record):
        lyra = make_record("Lyra memory", persona_id="lyra")
        kara = make_record("Kara memory", persona_id="kara")
        assert apply_filters(q("memory", persona_id="lyra"), [lyra, kara]) == [lyra]


class TestScoreAll:

    def test_empty_query_rejected(self, scorer, make_record):
        with pytest.raises(InvalidQuery):
            scorer.score(q("   "), make_record("anything"))
        with pytest.raises(InvalidQuery):
            scorer.score_all(q(""), [make_record("anything")])

    def test_index_path_matches_linear_scan(self, scorer, make_record):
        records = [
            make_record("Coffee in the morning, tea at night", days_ago=1),
            make_record("coffee beans from Colombia", days_ago=3),
            make_record("Watercolor painting class on Tuesdays", days_ago=5),
            make_record("The user's favorite color is teal", days_ago=12),
            make_record("Nothing related here", days_ago=0),
        ]
        query = q("coffee color tea user's")

        indexed = scorer.score_all(query, records, use_index=True)
        linear = scorer.score_all(query, records, use_index=False)

        assert [s.breakdown for s in indexed] == [s.breakdown for s in linear]

    def test_scores_never_negative(self, scorer, make_record):
        records = [make_record(f"memory number {i}", days_ago=i * 3) for i in range(10)]
        assert all(s.score >= 0 for s in scorer.score_all(q("memory"), records))

    def test_deterministic(self, scorer, make_record):
        records = [make_record("favorite color is blue", days_ago=2)]
        first = scorer.score_all(q("favorite color"), records)
        second = scorer.score_all(q("favorite color"), records)
        assert first == second

    def test_score_equals_breakdown_total(self, scorer, make_record):
        record = make_record("Theme is dark", days_ago=1, category="Preferences")
        scored = scorer.score(q("theme dark", category="Preferences"), record)
        assert scored.score == scored.breakdown.total == 8 + 5 + 9 + 4
