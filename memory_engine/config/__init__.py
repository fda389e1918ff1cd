from .settings import (
    AggregationCfg,
    ContextPolicy,
    ExtractionCfg,
    Paths,
    ScoringCfg,
    Settings,
    load_settings,
)

__all__ = [
    "AggregationCfg",
    "ContextPolicy",
    "ExtractionCfg",
    "Paths",
    "ScoringCfg",
    "Settings",
    "load_settings",
]
