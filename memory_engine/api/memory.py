"""
Memory API endpoints.

Thin request handlers over MemoryEngine: search, context assembly, listing,
remember/relabel/forget and analytics.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from memory_engine.config.settings import load_settings
from memory_engine.memory.engine import MemoryEngine
from memory_engine.memory.errors import (
    InvalidQuery,
    InvalidWindow,
    MemoryEngineError,
    RecordNotFound,
    StoreUnavailable,
)
from memory_engine.memory.integrate import MemoryIntegration
from memory_engine.memory.schemas import (
    AggregateSnapshot,
    MemoryMetadata,
    MemoryQuery,
    MemoryRecord,
    ScoredMemory,
)
from memory_engine.memory.store import SQLiteMemoryStore


router = APIRouter(prefix="/memory", tags=["memory"])


# Default engine instance (overridden in tests via dependency_overrides)
_engine: Optional[MemoryEngine] = None


def get_engine() -> MemoryEngine:
    """Get or create the SQLite-backed engine."""
    global _engine
    if _engine is None:
        settings = load_settings()
        _engine = MemoryEngine(SQLiteMemoryStore(settings.paths.memory_db), settings)
    return _engine


def _http_error(e: Exception) -> HTTPException:
    """Map engine errors to HTTP status codes."""
    if isinstance(e, (InvalidQuery, InvalidWindow)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, RecordNotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, StoreUnavailable):
        return HTTPException(status_code=503, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return HTTPException(status_code=400, detail=str(e))


class SearchMemoryResponse(BaseModel):
    """Ranked memories with scores."""

    memories: List[ScoredMemory] = Field(..., description="Top-K memories, best first")
    count: int = Field(..., description="Number of results returned")


class ListMemoryResponse(BaseModel):
    memories: List[MemoryRecord]
    count: int


class ContextResponse(BaseModel):
    """Prompt-ready memory context."""

    context: str
    metadata: MemoryMetadata


class RememberRequest(BaseModel):
    """Request to store a new memory."""

    owner_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=4000)
    persona_id: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = Field(None, description="Omit to extract tags from content")

    model_config = {
        "json_schema_extra": {
            "example": {
                "owner_id": "user_42",
                "content": "User's favorite color is green.",
                "persona_id": "lyra",
                "category": "Preferences",
            }
        }
    }


class RelabelRequest(BaseModel):
    tags: Optional[List[str]] = None
    category: Optional[str] = Field(None, description="Omit to keep, empty string to clear")


class DeleteMemoryResponse(BaseModel):
    deleted: bool
    message: str


# ============================================================================
# API Endpoints
# ============================================================================

@router.post("/search", response_model=SearchMemoryResponse)
async def search_memories(query: MemoryQuery, engine: MemoryEngine = Depends(get_engine)):
    """
    Rank memories against a query.

    Returns 400 for empty query text and 503 when the store cannot be read.
    """
    try:
        memories = engine.search(query)
    except MemoryEngineError as e:
        raise _http_error(e)
    return SearchMemoryResponse(memories=memories, count=len(memories))


@router.post("/context", response_model=ContextResponse)
async def memory_context(query: MemoryQuery, engine: MemoryEngine = Depends(get_engine)):
    """
    Build the memory context block for a chat turn.

    Never fails on store outages: the sentinel block is returned with
    metadata.degraded set and a warning to show the user.
    """
    context, metadata = MemoryIntegration(engine).inject_memories(query)
    return ContextResponse(context=context, metadata=metadata)


@router.get("/list", response_model=ListMemoryResponse)
async def list_memories(
    owner_id: str,
    persona_id: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,  # Comma-separated
    limit: int = 100,
    engine: MemoryEngine = Depends(get_engine),
):
    """List memories newest first with optional persona/category/tag filters."""
    try:
        query = MemoryQuery(
            owner_id=owner_id,
            persona_id=persona_id,
            category=category,
            tags=tags or [],
            limit=max(1, limit),
            mode="list",
        )
        memories = engine.list_memories(query)
    except MemoryEngineError as e:
        raise _http_error(e)
    return ListMemoryResponse(memories=memories, count=len(memories))


@router.post("/remember", response_model=MemoryRecord, status_code=201)
async def remember(request: RememberRequest, engine: MemoryEngine = Depends(get_engine)):
    """Store a new memory (category and tags are inferred when omitted)."""
    try:
        return engine.remember(
            owner_id=request.owner_id,
            content=request.content,
            persona_id=request.persona_id,
            category=request.category,
            tags=request.tags,
        )
    except (MemoryEngineError, ValueError) as e:
        raise _http_error(e)


@router.patch("/{record_id}/labels", response_model=MemoryRecord)
async def relabel(record_id: str, request: RelabelRequest, engine: MemoryEngine = Depends(get_engine)):
    """Replace a memory's tags and/or category."""
    try:
        return engine.relabel(record_id, tags=request.tags, category=request.category)
    except MemoryEngineError as e:
        raise _http_error(e)


@router.delete("/{record_id}", response_model=DeleteMemoryResponse)
async def forget(record_id: str, engine: MemoryEngine = Depends(get_engine)):
    """Delete a memory by id."""
    try:
        engine.forget(record_id)
    except MemoryEngineError as e:
        raise _http_error(e)
    return DeleteMemoryResponse(deleted=True, message=f"Memory {record_id} deleted")


@router.get("/stats", response_model=AggregateSnapshot)
async def memory_stats(
    owner_id: str,
    persona_id: Optional[str] = None,
    window_days: int = 30,
    engine: MemoryEngine = Depends(get_engine),
):
    """Analytics snapshot: counts, category distribution, tag frequency, timeline."""
    try:
        return engine.aggregate(owner_id, persona_id=persona_id, window_days=window_days)
    except MemoryEngineError as e:
        raise _http_error(e)


@router.get("/categories")
async def list_categories(engine: MemoryEngine = Depends(get_engine)):
    """Known category names (built-in first)."""
    return {"categories": engine.categories.names()}
