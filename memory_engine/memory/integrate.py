"""
Memory integration hooks for the chat orchestrator.

Injects memory context before generation and degrades to the "no relevant
memories" block when retrieval fails, so a store outage never aborts the
conversation.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from memory_engine.config.settings import ContextPolicy, Settings, load_settings

from .engine import MemoryEngine
from .errors import InvalidQuery, StoreUnavailable
from .schemas import MemoryMetadata, MemoryQuery
from .store import SQLiteMemoryStore


logger = logging.getLogger(__name__)

DEGRADED_WARNING = "Memory is temporarily unavailable, so this reply may not reflect earlier conversations."


class MemoryIntegration:
    """
    Integration layer between the engine and a conversation.

    Provides:
    - Pre-generation memory injection with fallback
    - Usage metadata for the response
    """

    def __init__(self, engine: MemoryEngine):
        self.engine = engine

    def inject_memories(
        self,
        query: MemoryQuery,
        policy: Optional[ContextPolicy] = None,
    ) -> Tuple[str, MemoryMetadata]:
        """
        Build the memory context for one user turn.

        Args:
            query: Search query for the turn
            policy: Optional formatting override

        Returns:
            (memory_context_string, metadata); on store failure the context is
            the sentinel block and metadata.degraded is True
        """
        assembler = self.engine.assembler

        try:
            ranked = self.engine.search(query)
        except InvalidQuery:
            # Nothing to search for; not a failure
            return assembler.assemble([], policy, category=query.category), MemoryMetadata()
        except StoreUnavailable as e:
            logger.warning("Memory retrieval failed for owner %s: %s", query.owner_id, e)
            metadata = MemoryMetadata(degraded=True, warning=DEGRADED_WARNING)
            return assembler.assemble([], policy, category=query.category), metadata

        used = assembler.select_within_budget(ranked, policy)
        context = assembler.assemble(used, policy, category=query.category)

        metadata = MemoryMetadata(
            used_ids=[m.id for m in used],
            used_count=len(used),
            used_chars=sum(len(m.record.content) for m in used),
            snippets=[m.record.content for m in used],
        )
        return context, metadata


def create_memory_integration(
    db_path: Optional[Union[str, Path]] = None,
    settings: Optional[Settings] = None,
) -> MemoryIntegration:
    """
    Factory for a SQLite-backed integration.

    Args:
        db_path: Path to SQLite database (default from settings.paths)
        settings: Engine settings (loaded from config when None)

    Returns:
        MemoryIntegration instance
    """
    settings = settings or load_settings()
    store = SQLiteMemoryStore(db_path or settings.paths.memory_db)
    return MemoryIntegration(MemoryEngine(store, settings))
