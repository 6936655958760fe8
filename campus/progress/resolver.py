"""Content identifier resolution.

Clients reference a content item by its position in the module, by its
stable ID or by its exact title. Everything is normalized to the position
so equivalent identifiers never produce separate completion entries.
"""

from collections.abc import Iterable, Sequence

from campus.courses.models import Content


def resolve_position(contents: Sequence[Content], identifier: str) -> int | None:
    """Resolve an identifier to a canonical position.

    Resolution order, first match wins:
    1. a non-negative integer lower than the number of items
    2. an item whose stable ID equals the identifier
    3. an item whose title equals the identifier

    Returns:
        The zero-based position, or None when nothing matches.
    """
    identifier = str(identifier)

    if identifier.isascii() and identifier.isdigit():
        index = int(identifier)
        if index < len(contents):
            return index

    for index, content in enumerate(contents):
        if content.content_id is not None and content.content_id == identifier:
            return index

    for index, content in enumerate(contents):
        if content.title == identifier:
            return index

    return None


def normalize_position(contents: Sequence[Content], identifier: str) -> str:
    """Stringified position, or the identifier unchanged when it does not resolve."""
    position = resolve_position(contents, identifier)
    return str(position) if position is not None else str(identifier)


def normalize_positions(contents: Sequence[Content], entries: Iterable[str]) -> set[str]:
    """Normalize stored completion entries, collapsing equivalent ones."""
    return {normalize_position(contents, entry) for entry in entries}


def aliases_of(
    contents: Sequence[Content], entries: Iterable[str], position: str
) -> set[str]:
    """Stored entries that resolve to ``position`` but are not spelled as it."""
    return {
        entry
        for entry in entries
        if entry != position and normalize_position(contents, entry) == position
    }
