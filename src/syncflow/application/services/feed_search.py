"""Filtering of a reconciled feed by a search query."""

from collections.abc import Iterable

from syncflow.domain.models.shared_item import ContentType, SharedItem


def filter_items(items: Iterable[SharedItem], query: str) -> list[SharedItem]:
    """Items whose text content or sender name contains the query, case-insensitively."""
    needle = query.strip().lower()
    if not needle:
        return list(items)
    return [
        item
        for item in items
        if needle in item.sender.lower()
        or (item.type is ContentType.TEXT and needle in item.content.lower())
    ]
