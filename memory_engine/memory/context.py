"""
Prompt context assembly.

Renders ranked memories into the text block injected into the generator's
system prompt. The block always has the same sections, even when nothing
relevant was found, so downstream prompt structure is stable across calls.
"""

from typing import List, Optional

from memory_engine.config.settings import ContextPolicy

from .categories import CategoryRegistry
from .schemas import ScoredMemory


MEMORIES_HEADING = "You have access to the following relevant memories from past interactions:"

NO_MEMORIES_SENTINEL = "No relevant memories found for this query."

USAGE_GUIDANCE = """Guidelines for using memories:
1. Prioritize memories with higher relevance scores.
2. If memories contradict each other, prefer the more recent ones.
3. Integrate the information naturally. Do not mention "Memory 1", "Memory 2" or any other internal memory label in your response.
4. If the memories don't contain relevant information, respond based on your general knowledge."""


def format_score(score: float) -> str:
    """Render whole scores without a trailing .0."""
    if float(score).is_integer():
        return str(int(score))
    return f"{score:.2f}".rstrip("0").rstrip(".")


class ContextAssembler:
    """
    Formats ranked memories for a generative-text call.

    Each memory line carries its relevance, category and date so the
    generator can weigh confidence and recency.
    """

    def __init__(
        self,
        policy: Optional[ContextPolicy] = None,
        categories: Optional[CategoryRegistry] = None,
    ):
        self.policy = policy or ContextPolicy()
        self.categories = categories or CategoryRegistry()

    def select_within_budget(
        self,
        ranked: List[ScoredMemory],
        policy: Optional[ContextPolicy] = None,
    ) -> List[ScoredMemory]:
        """
        Keep the longest most-relevant prefix that fits the character budget.

        Memory text is never cut mid-way; the first memory that does not fit
        ends the selection.
        """
        policy = policy or self.policy
        if policy.max_chars is None:
            return list(ranked)

        selected = []
        total = 0
        for item in ranked:
            size = len(item.record.content)
            if total + size > policy.max_chars:
                break
            selected.append(item)
            total += size
        return selected

    def format_memory(self, position: int, item: ScoredMemory, policy: Optional[ContextPolicy] = None) -> str:
        """One memory line, e.g. `[Memory 1] (relevance: 18) [Category: Preferences] 2026-10-19: ...`."""
        policy = policy or self.policy
        parts = [f"[Memory {position}]"]

        if policy.include_scores:
            parts.append(f"(relevance: {format_score(item.score)})")
        if policy.include_category and item.record.category:
            parts.append(f"[Category: {item.record.category}]")

        label = " ".join(parts)
        if policy.include_date:
            label = f"{label} {item.record.created_at.strftime(policy.date_format)}"

        return f"{label}: {item.record.content}"

    def assemble(
        self,
        ranked: List[ScoredMemory],
        policy: Optional[ContextPolicy] = None,
        category: Optional[str] = None,
    ) -> str:
        """
        Render the context block.

        Args:
            ranked: Memories, most relevant first
            policy: Formatting policy (defaults to the assembler's)
            category: Category whose prompt template opens the block

        Returns:
            Prompt-ready text
        """
        policy = policy or self.policy
        selected = self.select_within_budget(ranked, policy)

        sections = []
        if policy.include_preamble:
            sections.append(self.categories.template_for(category))

        sections.append(MEMORIES_HEADING)

        if selected:
            lines = [self.format_memory(i, item, policy) for i, item in enumerate(selected, start=1)]
            sections.append("\n\n".join(lines))
        else:
            sections.append(NO_MEMORIES_SENTINEL)

        sections.append(USAGE_GUIDANCE)
        return "\n\n".join(sections)
