"""
Inverted token index over a memory snapshot.

Built once per search from the snapshot and discarded afterwards. Content is
split on whitespace only, so any whitespace-free query term that occurs in a
record occurs inside exactly one of its tokens; results therefore equal a
linear `term in content` scan.

Substring lookups go through a trigram table over the vocabulary: only the
tokens sharing every trigram of the term are checked, instead of every token
or every record's content.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Set

from .schemas import MemoryRecord


GRAM_SIZE = 3


def _grams(text: str) -> Set[str]:
    return {text[i:i + GRAM_SIZE] for i in range(len(text) - GRAM_SIZE + 1)}


class TermIndex:
    """Token → record-id postings, a trigram → token table and each record's leading token."""

    def __init__(self, records: Iterable[MemoryRecord]):
        self._postings: Dict[str, Set[str]] = defaultdict(set)
        self._first_token: Dict[str, str] = {}
        self._gram_tokens: Dict[str, Set[str]] = defaultdict(set)
        self._cache: Dict[str, Set[str]] = {}
        self._size = 0

        for record in records:
            tokens = record.content.lower().split()
            self._size += 1
            if tokens:
                self._first_token[record.id] = tokens[0]
            for token in tokens:
                self._postings[token].add(record.id)

        for token in self._postings:
            for gram in _grams(token):
                self._gram_tokens[gram].add(token)

    def __len__(self) -> int:
        return self._size

    @property
    def vocabulary_size(self) -> int:
        return len(self._postings)

    def _candidate_tokens(self, term: str) -> Iterable[str]:
        if len(term) < GRAM_SIZE:
            # Too short for the trigram table
            return self._postings.keys()

        candidates = None
        for gram in sorted(_grams(term), key=lambda g: len(self._gram_tokens.get(g, ()))):
            tokens = self._gram_tokens.get(gram)
            if not tokens:
                return ()
            candidates = set(tokens) if candidates is None else candidates & tokens
            if not candidates:
                return ()
        return candidates or ()

    def matching_ids(self, term: str) -> Set[str]:
        """Ids of records whose content contains term."""
        term = term.lower()
        cached = self._cache.get(term)
        if cached is not None:
            return cached

        matched: Set[str] = set()
        for token in self._candidate_tokens(term):
            if term in token:
                matched |= self._postings[token]

        self._cache[term] = matched
        return matched

    def starts_with(self, record_id: str, term: str) -> bool:
        """True when the record's content begins with term."""
        first = self._first_token.get(record_id)
        return first is not None and first.startswith(term.lower())

    def match_table(self, terms: List[str]) -> Dict[str, Set[str]]:
        """Matching ids for each query term."""
        return {term: self.matching_ids(term) for term in terms}
