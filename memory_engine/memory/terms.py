"""
Term extraction for memory tags and query matching.
"""

import re
from typing import FrozenSet, Iterable, List, Optional

from memory_engine.config.settings import ExtractionCfg


STOPWORDS: FrozenSet[str] = frozenset({
    "this", "that", "with", "from", "have", "were", "they", "their",
    "about", "also", "been", "being", "could", "does", "into", "just",
    "more", "most", "much", "only", "other", "over", "same", "should",
    "some", "such", "than", "them", "then", "there", "these", "those",
    "very", "what", "when", "where", "which", "while", "will", "would",
    "your", "yours",
})

_PUNCTUATION = re.compile(r"[^\w\s]")


def tokenize(text: str) -> List[str]:
    """Lower-case text, replace punctuation with spaces and split."""
    return _PUNCTUATION.sub(" ", text.lower()).split()


def extract_terms(
    text: Optional[str],
    max_terms: int = 5,
    min_length: int = 4,
    stopwords: Iterable[str] = STOPWORDS,
) -> List[str]:
    """
    Pull candidate keywords from free text.

    Args:
        text: Content to extract from
        max_terms: Keep only the first N distinct terms
        min_length: Minimum term length (4 keeps words longer than 3 chars)
        stopwords: Words never returned

    Returns:
        Distinct terms in order of first appearance (empty for empty input)
    """
    if not text:
        return []

    stop = stopwords if isinstance(stopwords, (set, frozenset)) else frozenset(stopwords)
    terms: List[str] = []

    for token in tokenize(text):
        if len(token) < min_length or token in stop or token in terms:
            continue
        terms.append(token)
        if len(terms) >= max_terms:
            break

    return terms


def query_terms(text: str, min_length: int = 3) -> List[str]:
    """
    Split query text into match terms.

    Terms keep inner punctuation (so "user's" still matches "user's"), lose
    surrounding punctuation ("color?" becomes "color"), and are de-duplicated.
    """
    terms: List[str] = []
    for raw in text.lower().split():
        term = raw.strip("\"'.,;:!?()[]{}<>")
        if len(term) >= min_length and term not in terms:
            terms.append(term)
    return terms


class TermExtractor:
    """Term extraction bound to engine settings."""

    def __init__(self, cfg: Optional[ExtractionCfg] = None):
        self.cfg = cfg or ExtractionCfg()
        self.stopwords = STOPWORDS | {w.lower() for w in self.cfg.extra_stopwords}

    def extract(self, text: Optional[str], max_terms: Optional[int] = None) -> List[str]:
        return extract_terms(
            text,
            max_terms=max_terms if max_terms is not None else self.cfg.max_terms,
            min_length=self.cfg.min_term_length,
            stopwords=self.stopwords,
        )
