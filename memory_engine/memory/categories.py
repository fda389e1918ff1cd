"""
Memory categories.

Categories are interned canonical names looked up through a single table,
so scoring and aggregation compare identical strings instead of ad-hoc
free text. Legacy free-form values are migrated through `normalize()`.
"""

import re
import sys
from typing import Dict, Iterable, List, Optional


FILE_OPERATIONS = "File Operations"
PREFERENCES = "Preferences"
CONVERSATIONS = "Conversations"
IMPORTANT = "Important"
TECHNICAL = "Technical"

BUILTIN_CATEGORIES = (FILE_OPERATIONS, PREFERENCES, CONVERSATIONS, IMPORTANT, TECHNICAL)

# Legacy spellings seen in stored data
LEGACY_ALIASES: Dict[str, str] = {
    "file operation": FILE_OPERATIONS,
    "files": FILE_OPERATIONS,
    "file ops": FILE_OPERATIONS,
    "preference": PREFERENCES,
    "prefs": PREFERENCES,
    "settings": PREFERENCES,
    "conversation": CONVERSATIONS,
    "chat": CONVERSATIONS,
    "chats": CONVERSATIONS,
    "importance": IMPORTANT,
    "critical": IMPORTANT,
    "urgent": IMPORTANT,
    "tech": TECHNICAL,
}

CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    FILE_OPERATIONS: ["file", "folder", "upload", "download", "document", "storage", "save"],
    PREFERENCES: ["prefer", "setting", "option", "customize", "theme", "layout", "configuration"],
    CONVERSATIONS: ["chat", "talk", "discuss", "conversation", "message", "communicate"],
    IMPORTANT: ["important", "critical", "urgent", "remember", "don't forget", "key", "essential"],
    TECHNICAL: ["code", "program", "technical", "error", "bug", "feature", "function", "api"],
}

DEFAULT_TEMPLATE = """You are a helpful AI assistant with memory capabilities.
You have access to memories from past interactions that help you provide more personalized and contextually relevant responses.
When responding, use these memories to maintain continuity and provide more helpful answers."""

CATEGORY_TEMPLATES: Dict[str, str] = {
    FILE_OPERATIONS: """You are a file management expert assistant with memory capabilities.
Focus on helping the user with file organization, uploads, downloads, and management tasks.
When responding to queries about files and folders, prioritize efficiency, organization, and best practices.""",
    PREFERENCES: """You are a personalization assistant with memory capabilities.
Focus on remembering and applying the user's preferences, settings, and customization choices.
When responding, emphasize personalization and adapting to the user's specific needs and preferences.""",
    CONVERSATIONS: """You are a conversational assistant with memory capabilities.
Focus on maintaining a natural, engaging conversation flow while remembering past discussions.
When responding, emphasize continuity with previous conversations and build upon established rapport.""",
    IMPORTANT: """You are a priority-focused assistant with memory capabilities.
Focus on high-priority information and tasks that the user has marked as important.
When responding, emphasize urgency, accuracy, and thoroughness for critical matters.""",
    TECHNICAL: """You are a technical assistant with memory capabilities.
Focus on providing precise, technically accurate information and solutions.
When responding to technical queries, prioritize accuracy, clarity, and educational value.""",
}


def _lookup_key(name: str) -> str:
    """Case- and separator-insensitive key for a category name."""
    return re.sub(r"[\s_\-]+", " ", name.strip().lower())


class CategoryRegistry:
    """
    Lookup table of canonical category names.

    Built-in categories and legacy aliases are always present; custom
    categories are added explicitly with `register()`.
    """

    def __init__(self, custom: Optional[Iterable[str]] = None):
        self._names: Dict[str, str] = {}
        self._templates: Dict[str, str] = dict(CATEGORY_TEMPLATES)
        self._custom: List[str] = []

        for name in BUILTIN_CATEGORIES:
            self._names[_lookup_key(name)] = sys.intern(name)
        for alias, name in LEGACY_ALIASES.items():
            self._names[_lookup_key(alias)] = self._names[_lookup_key(name)]

        for name in custom or []:
            self.register(name)

    def register(self, name: str, template: Optional[str] = None) -> str:
        """
        Add a custom category (idempotent).

        Args:
            name: Display name
            template: Optional prompt preamble for this category

        Returns:
            Canonical name
        """
        cleaned = " ".join(name.split())
        if not cleaned:
            raise ValueError("Category name cannot be empty")

        key = _lookup_key(cleaned)
        canonical = self._names.get(key)
        if canonical is None:
            canonical = sys.intern(cleaned)
            self._names[key] = canonical
            self._custom.append(canonical)

        if template:
            self._templates[canonical] = template
        return canonical

    def normalize(self, raw: Optional[str]) -> Optional[str]:
        """
        Map a stored or user-supplied value to its canonical category.

        Known names and aliases resolve to the interned canonical string.
        Unknown non-empty values are kept as whitespace-cleaned text so legacy
        data is never lost; register them to make them first-class.
        """
        if raw is None:
            return None
        cleaned = " ".join(str(raw).split())
        if not cleaned:
            return None
        return self._names.get(_lookup_key(cleaned), cleaned)

    def is_known(self, name: Optional[str]) -> bool:
        return name is not None and _lookup_key(name) in self._names

    def names(self) -> List[str]:
        """Built-in categories followed by custom ones, in registration order."""
        return list(BUILTIN_CATEGORIES) + list(self._custom)

    def template_for(self, category: Optional[str]) -> str:
        """Prompt preamble for a category (default template when unknown)."""
        canonical = self.normalize(category)
        if canonical is None:
            return DEFAULT_TEMPLATE
        return self._templates.get(canonical, DEFAULT_TEMPLATE)

    def suggest(self, text: str, min_hits: int = 2) -> Optional[str]:
        """
        Suggest a built-in category from keyword hits.

        Args:
            text: Memory content (or prompt plus response)
            min_hits: Minimum keyword hits required for a suggestion

        Returns:
            Best matching category, or None when no category reaches min_hits
        """
        return suggest_category(text, min_hits=min_hits)


def suggest_category(text: str, min_hits: int = 2) -> Optional[str]:
    """Pick the built-in category with the most keyword hits in text."""
    content = text.lower()

    best: Optional[str] = None
    highest = 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = sum(1 for keyword in keywords if keyword in content)
        # First category wins ties
        if hits > highest:
            highest = hits
            best = category

    return best if highest >= min_hits else None
