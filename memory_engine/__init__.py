"""
Memory Relevance Engine.

Scores, ranks and assembles stored assistant memories into prompt context,
and aggregates memory snapshots for analytics views.
"""

__version__ = "0.3.0"
