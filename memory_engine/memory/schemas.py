"""
Memory engine data models.

Defines MemoryRecord, scored results, queries and analytics snapshots.
"""

import collections.abc
import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidQuery


# Type aliases
QueryMode = Literal["search", "list"]

SECONDS_PER_DAY = 86400


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_record_id() -> str:
    return f"mem_{uuid.uuid4().hex[:12]}"


def normalize_tags(tags: Union[None, str, Iterable[str]]) -> Tuple[str, ...]:
    """
    Lower-case, strip and de-duplicate tags, keeping first-seen order.

    A single comma-separated string is accepted as well.
    """
    if tags is None:
        return ()
    if isinstance(tags, str):
        tags = tags.split(",")
    elif not isinstance(tags, collections.abc.Iterable):
        # ValueError so pydantic reports it as a ValidationError
        raise ValueError("tags must be a string or a list of strings")

    seen = []
    for tag in tags:
        cleaned = " ".join(str(tag).split()).lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


class MemoryRecord(BaseModel):
    """
    A single stored memory.

    Content is immutable once stored: corrections are appended as new
    records so the recency tie-break can reconcile conflicting statements.
    Only tags and category may change, through `with_labels()`.
    """

    model_config = ConfigDict(
        frozen=True,
        coerce_numbers_to_str=True,
        json_schema_extra={
            "example": {
                "id": "mem_abc123def456",
                "owner_id": "user_42",
                "persona_id": "lyra",
                "content": "User's favorite color is green.",
                "category": "Preferences",
                "tags": ["favorite", "color", "green"],
                "created_at": "2026-10-19T09:30:00Z",
                "updated_at": None,
            }
        },
    )

    id: str = Field(default_factory=new_record_id, description="Unique identifier")
    owner_id: str = Field(..., min_length=1, description="Owning user")
    persona_id: Optional[str] = Field(None, description="Optional persona scope")

    content: str = Field(..., description="Memory text, never edited in place")
    category: Optional[str] = Field(None, description="Canonical category name")
    tags: Tuple[str, ...] = Field(default_factory=tuple, description="Normalized tags")

    created_at: datetime = Field(default_factory=utcnow, description="Creation time (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Last label change (UTC)")

    @field_validator("content")
    @classmethod
    def _content_not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("content cannot be empty")
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _blank_category_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Tuple[str, ...]:
        return normalize_tags(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @property
    def last_modified(self) -> datetime:
        return self.updated_at or self.created_at

    def age_days(self, now: Optional[datetime] = None) -> int:
        """Whole days since creation, never negative."""
        now = as_utc(now) if now is not None else utcnow()
        seconds = (now - self.created_at).total_seconds()
        return max(0, math.floor(seconds / SECONDS_PER_DAY))

    def created_date(self) -> date:
        return self.created_at.date()

    def with_labels(
        self,
        tags: Optional[Iterable[str]] = None,
        category: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "MemoryRecord":
        """
        Return a copy with new tags and/or category.

        Args:
            tags: Replacement tags (None keeps current tags)
            category: Replacement category (None keeps it, "" clears it)
            now: Timestamp for updated_at

        Returns:
            New MemoryRecord; content and created_at are unchanged
        """
        update: Dict[str, Any] = {"updated_at": as_utc(now) if now else utcnow()}
        if tags is not None:
            update["tags"] = normalize_tags(tags)
        if category is not None:
            update["category"] = category.strip() or None
        return self.model_copy(update=update)

    def snippet(self, max_chars: int = 100) -> str:
        """Get truncated content for display."""
        if len(self.content) <= max_chars:
            return self.content
        return self.content[:max_chars - 3] + "..."

    def to_storage_dict(self) -> Dict[str, Any]:
        """Convert to JSON-safe dict for storage."""
        return self.model_dump(mode="json")

    @classmethod
    def from_storage_dict(cls, data: Dict[str, Any]) -> "MemoryRecord":
        """Load from storage dict."""
        return cls.model_validate(data)


class ScoreBreakdown(BaseModel):
    """Per-component relevance score, kept for explainability."""

    lexical_score: float = 0.0
    recency_score: float = 0.0
    category_boost: float = 0.0

    @property
    def total(self) -> float:
        return self.lexical_score + self.recency_score + self.category_boost


class ScoredMemory(BaseModel):
    """A memory record with its relevance score for one query."""

    model_config = ConfigDict(frozen=True)

    record: MemoryRecord
    score: float = Field(..., ge=0.0)
    breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def created_at(self) -> datetime:
        return self.record.created_at


class MemoryQuery(BaseModel):
    """Query parameters for memory retrieval."""

    text: str = Field("", description="Query text to match against")
    owner_id: str = Field(..., min_length=1, description="Owner whose memories are searched")
    persona_id: Optional[str] = Field(None, description="Restrict to one persona")
    category: Optional[str] = Field(None, description="Category filter")
    tags: List[str] = Field(default_factory=list, description="Tag filter (any match)")
    limit: int = Field(5, description="Maximum results to return (K); values below 1 mean 1")
    mode: QueryMode = Field("search", description="'search' scores, 'list' only filters")
    strict_filter: bool = Field(True, description="Exclude records not matching category/tag filters")

    model_config = ConfigDict(
        coerce_numbers_to_str=True,
        json_schema_extra={
            "example": {
                "text": "What is my favorite color?",
                "owner_id": "user_42",
                "persona_id": "lyra",
                "limit": 5,
                "mode": "search",
            }
        },
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> List[str]:
        return list(normalize_tags(value))

    @field_validator("limit")
    @classmethod
    def _clamp_limit(cls, value: int) -> int:
        return max(1, value)

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    @property
    def has_filter(self) -> bool:
        return bool(self.category) or bool(self.tags)

    def require_search_text(self) -> None:
        """Raise InvalidQuery when a search has nothing to search for."""
        if self.mode == "search" and self.is_blank:
            raise InvalidQuery("Search query text cannot be empty")


class MemoryMetadata(BaseModel):
    """Metadata about memory usage in a response."""

    used_ids: List[str] = Field(default_factory=list, description="Memory IDs injected")
    used_count: int = Field(0, description="Number of memories used")
    used_chars: int = Field(0, description="Total characters from memories")
    snippets: List[str] = Field(default_factory=list, description="Memory text used")
    degraded: bool = Field(False, description="True when retrieval failed and the sentinel was used")
    warning: Optional[str] = Field(None, description="User-visible degraded-mode warning")


# ============================================================================
# Analytics
# ============================================================================

class TimelineEntry(BaseModel):
    date: str
    count: int = 0
    cumulative: int = 0


class NamedCount(BaseModel):
    name: str
    value: int = 0


class CategoryCount(NamedCount):
    percentage: float = 0.0


class TagCount(BaseModel):
    value: str
    count: int = 0


class AggregateSnapshot(BaseModel):
    """Analytics summary over one owner's memory snapshot."""

    total_count: int = 0
    recent_count: int = 0
    skipped_count: int = Field(0, description="Malformed records ignored")
    uncategorized_count: int = 0

    category_distribution: List[CategoryCount] = Field(default_factory=list)
    tag_frequency: List[TagCount] = Field(default_factory=list)
    age_distribution: List[NamedCount] = Field(default_factory=list)

    window_days: int = 30
    window_total: int = 0
    timeline: List[TimelineEntry] = Field(default_factory=list)

    oldest_created_at: Optional[datetime] = None
    newest_created_at: Optional[datetime] = None
    time_span_days: float = 0.0
    average_content_length: float = 0.0


class ImportReport(BaseModel):
    """Outcome of a bulk import."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    failed_items: List[Dict[str, Any]] = Field(default_factory=list)
    imported_ids: List[str] = Field(default_factory=list)
