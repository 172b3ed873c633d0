"""Search query construction from free text and category filters."""

from __future__ import annotations

from collections.abc import Iterable

from rich.markup import escape as escape_markup

# Category chips offered in the filter bar: (id, label, topic phrase)
CATEGORIES: list[tuple[str, str, str]] = [
    ("cs.AI", "AI", "artificial intelligence"),
    ("cs.LG", "Machine Learning", "machine learning"),
    ("cs.CL", "Computation & Language", "natural language processing"),
    ("cs.CV", "Computer Vision", "computer vision"),
    ("cs.RO", "Robotics", "robotics"),
    ("cs.NE", "Neural Networks", "neural networks"),
]

CATEGORY_TOPICS: dict[str, str] = {cat_id: topic for cat_id, _label, topic in CATEGORIES}
CATEGORY_LABELS: dict[str, str] = {cat_id: label for cat_id, label, _topic in CATEGORIES}

DEFAULT_TOPICS = ("artificial intelligence", "machine learning", "deep learning")
DEFAULT_QUERY = " OR ".join(DEFAULT_TOPICS)


def escape_rich_text(text: str) -> str:
    """Escape text for safe Rich markup rendering."""
    return escape_markup(text) if text else ""


def category_topic(category_id: str) -> str:
    """Map a category id to its topic phrase; unknown ids map to ``""``."""
    return CATEGORY_TOPICS.get(category_id, "")


def category_label(category_id: str) -> str:
    return CATEGORY_LABELS.get(category_id, category_id)


def build_search_query(search_text: str, selected_categories: Iterable[str]) -> str:
    """Build the search-engine query for the feed.

    Args:
        search_text: Free text typed by the user (may be empty).
        selected_categories: Category ids in selection order.

    Returns:
        ``search_text`` alone, the OR-joined topic phrases alone,
        ``(text) AND (phrase OR ...)`` when both are present, or the
        default topic disjunction when neither is.
    """
    text = search_text.strip()
    phrases = [phrase for phrase in map(category_topic, selected_categories) if phrase]

    if text and phrases:
        return f"({text}) AND ({' OR '.join(phrases)})"
    if text:
        return text
    if phrases:
        return " OR ".join(phrases)
    return DEFAULT_QUERY


def toggle_category(selected: Iterable[str], category_id: str) -> tuple[str, ...]:
    """Return ``selected`` with ``category_id`` removed if present, else appended."""
    current = tuple(selected)
    if category_id in current:
        return tuple(cat for cat in current if cat != category_id)
    return (*current, category_id)


__all__ = [
    "CATEGORIES",
    "CATEGORY_LABELS",
    "CATEGORY_TOPICS",
    "DEFAULT_QUERY",
    "DEFAULT_TOPICS",
    "build_search_query",
    "category_label",
    "category_topic",
    "escape_rich_text",
    "toggle_category",
]
