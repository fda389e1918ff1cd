"""Engine settings and configuration schema."""

import json
import os
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field


CONFIG_ENV_VAR = "MEMORY_ENGINE_CONFIG"


class ScoringCfg(BaseModel):
    """Weights and limits for relevance scoring."""
    term_match_points: float = 5.0
    prefix_match_points: float = 3.0
    min_query_term_length: int = 3
    recency_max_points: int = 10
    filter_boost: float = 4.0
    default_limit: int = 5
    max_scan_records: int = Field(5000, ge=1)
    use_index: bool = True


class ExtractionCfg(BaseModel):
    """Term extraction and auto-labelling options."""
    max_terms: int = 5
    min_term_length: int = 4
    extra_stopwords: List[str] = Field(default_factory=list)
    auto_tag: bool = True
    auto_categorize: bool = True
    category_min_hits: int = 2


class AggregationCfg(BaseModel):
    """Analytics window configuration."""
    recent_window_days: int = 7
    allowed_windows: List[int] = Field(default_factory=lambda: [7, 30, 90, 180, 365])
    default_window_days: int = 30
    tag_min_count: int = 2
    tag_top_n: int = 50


class ContextPolicy(BaseModel):
    """Formatting policy for the prompt context block."""
    include_preamble: bool = True
    include_scores: bool = True
    include_category: bool = True
    include_date: bool = True
    date_format: str = "%Y-%m-%d"
    max_chars: Optional[int] = Field(None, ge=1, description="Budget for memory text, None for unlimited")


class Paths(BaseModel):
    """File and directory paths configuration."""
    memory_db: str = "data/memory/memories.db"


class Settings(BaseModel):
    """Main engine settings."""
    scoring: ScoringCfg = ScoringCfg()
    extraction: ExtractionCfg = ExtractionCfg()
    aggregation: AggregationCfg = AggregationCfg()
    context: ContextPolicy = ContextPolicy()
    paths: Paths = Paths()
    log_level: str = "INFO"


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from a JSON file.

    Args:
        path: Config file path; falls back to $MEMORY_ENGINE_CONFIG

    Returns:
        Validated Settings (defaults when no file is configured or present)
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)

    if not path:
        return Settings()

    config_path = Path(path)
    if not config_path.exists():
        return Settings()

    data = json.loads(config_path.read_text(encoding="utf-8"))
    return Settings.model_validate(data)
