"""
Memory relevance subsystem.

Provides:
- Term extraction for tags and tag clouds
- Relevance scoring (lexical + recency + filter boost)
- Top-K ranking with newer-first tie-break
- Prompt context assembly
- Analytics aggregation
- Store backends (in-memory, SQLite)
"""

from .aggregate import MemoryAggregator
from .categories import CategoryRegistry, suggest_category
from .context import NO_MEMORIES_SENTINEL, ContextAssembler
from .engine import MemoryEngine
from .errors import InvalidQuery, InvalidWindow, MemoryEngineError, RecordNotFound, StoreUnavailable
from .index import TermIndex
from .integrate import MemoryIntegration, create_memory_integration
from .ranking import rank
from .schemas import (
    AggregateSnapshot,
    ImportReport,
    MemoryMetadata,
    MemoryQuery,
    MemoryRecord,
    ScoreBreakdown,
    ScoredMemory,
)
from .scoring import RelevanceScorer
from .store import InMemoryMemoryStore, MemoryStoreBackend, SQLiteMemoryStore
from .terms import TermExtractor, extract_terms

__all__ = [
    "AggregateSnapshot",
    "CategoryRegistry",
    "ContextAssembler",
    "ImportReport",
    "InMemoryMemoryStore",
    "InvalidQuery",
    "InvalidWindow",
    "MemoryAggregator",
    "MemoryEngine",
    "MemoryEngineError",
    "MemoryIntegration",
    "MemoryMetadata",
    "MemoryQuery",
    "MemoryRecord",
    "MemoryStoreBackend",
    "NO_MEMORIES_SENTINEL",
    "RecordNotFound",
    "RelevanceScorer",
    "SQLiteMemoryStore",
    "ScoreBreakdown",
    "ScoredMemory",
    "StoreUnavailable",
    "TermExtractor",
    "TermIndex",
    "create_memory_integration",
    "extract_terms",
    "rank",
    "suggest_category",
]
